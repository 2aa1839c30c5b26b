"""Boundary between Pillow-decoded files and ``PixelBuffer``.

The encoder side speaks bottom-up scanlines, the engine keeps rows top-down;
``reverse_rows`` is applied exactly once in each direction.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from .buffer import PixelBuffer

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _bottom_up_bytes(img: Image.Image) -> bytes:
    return img.convert("RGBA").tobytes("raw", "RGBA", 0, -1)


def _from_bottom_up(raw: bytes, width: int, height: int) -> PixelBuffer:
    return PixelBuffer(width, height, raw).reverse_rows()


def from_pil(img: Image.Image) -> PixelBuffer:
    width, height = img.size
    return _from_bottom_up(_bottom_up_bytes(img), width, height)


def to_pil(buffer: PixelBuffer) -> Image.Image:
    flipped = buffer.reverse_rows()
    if flipped is None:
        raise ValueError("Cannot encode a null buffer")
    return Image.frombytes("RGBA", buffer.size, flipped.tobytes(), "raw", "RGBA", 0, -1)


def flatten_to_pil(buffer: PixelBuffer) -> Image.Image:
    """Opaque RGB image of ``buffer`` composited over the background."""

    rgb = buffer.to_rgb()
    if rgb is None:
        raise ValueError("Cannot encode a null buffer")
    return Image.fromarray(rgb, mode="RGB")


def decode_bytes(data: bytes) -> PixelBuffer:
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        return from_pil(img)


def encode_png(buffer: PixelBuffer, flatten: bool = True) -> bytes:
    img = flatten_to_pil(buffer) if flatten else to_pil(buffer)
    out = io.BytesIO()
    img.save(out, "PNG", optimize=True)
    return out.getvalue()


def load_image(path: Optional[PathLike]) -> Optional[PixelBuffer]:
    """Decode a truecolor image file; ``None`` (and a log line) on failure."""

    if not path:
        LOGGER.error("No filename given.")
        return None
    try:
        with Image.open(Path(path)) as img:
            img.load()
            return from_pil(img)
    except (OSError, UnidentifiedImageError) as exc:
        LOGGER.error("Image load error for %s: %s", path, exc)
        return None


def save_image(buffer: PixelBuffer, path: PathLike) -> bool:
    """Write ``buffer`` as a 32-bit Targa file. Returns success."""

    if buffer.is_null:
        LOGGER.error("Cannot save %s: buffer has no pixel data", path)
        return False
    try:
        to_pil(buffer).save(Path(path), format="TGA")
    except (OSError, ValueError) as exc:
        LOGGER.error("TGA save error for %s: %s", path, exc)
        return False
    return True
