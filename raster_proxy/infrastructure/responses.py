from __future__ import annotations

import io

from flask import send_file

from ..config import SETTINGS, EngineSettings
from ..processing.buffer import PixelBuffer
from ..processing.codec import encode_png
from .cache import CACHE


def send_png_bytes(data: bytes):
    return send_file(io.BytesIO(data), mimetype="image/png")


def send_png(
    buffer: PixelBuffer,
    cache_key: str | None = None,
    flatten: bool | None = None,
    settings: EngineSettings | None = None,
):
    settings = settings or SETTINGS
    data = encode_png(buffer, flatten=settings.flatten_output if flatten is None else flatten)
    if cache_key:
        CACHE.put(cache_key, data, ttl=settings.cache_ttl, max_entries=settings.cache_size)
    return send_png_bytes(data)
