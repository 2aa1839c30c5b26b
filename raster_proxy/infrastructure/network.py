from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import requests
from PIL import UnidentifiedImageError

from ..config import SETTINGS
from ..processing.buffer import PixelBuffer
from ..processing.codec import decode_bytes

LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]


class SourceFetchError(RuntimeError):
    """The source image could not be downloaded or decoded."""


class SourceFetcher:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        retries: Optional[int] = None,
        timeout: Optional[float] = None,
        backoff: float = 0.4,
    ) -> None:
        self._session_factory = session_factory or requests.Session
        self._session = self._create_session()
        self._retries = retries
        self._timeout = timeout
        self._backoff = backoff

    def _create_session(self) -> requests.Session:
        session = self._session_factory()
        session.headers.update({"User-Agent": "raster-proxy/1.0"})
        return session

    def fetch_bytes(
        self,
        url: str | None = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> bytes:
        target_url = url or SETTINGS.source_url
        if not target_url:
            raise SourceFetchError("No source URL configured")

        # explicit per-call values win, then the constructor's, then SETTINGS
        if timeout is None:
            timeout = SETTINGS.timeout if self._timeout is None else self._timeout
        if retries is None:
            retries = SETTINGS.retries if self._retries is None else self._retries

        last_exception: Exception | None = None
        for attempt in range(1, retries + 2):
            try:
                response = self._session.get(target_url, timeout=timeout)
                response.raise_for_status()
                return response.content
            except requests.RequestException as exc:
                last_exception = exc
                LOGGER.warning("Fetching %s failed (attempt %d): %s", target_url, attempt, exc)
                if attempt <= retries:
                    time.sleep(self._backoff * attempt)
        raise SourceFetchError(f"{target_url}: {last_exception}")

    def fetch_buffer(
        self,
        url: str | None = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> PixelBuffer:
        data = self.fetch_bytes(url, timeout=timeout, retries=retries)
        try:
            return decode_bytes(data)
        except (OSError, UnidentifiedImageError) as exc:
            raise SourceFetchError(f"{url or SETTINGS.source_url}: undecodable image ({exc})") from exc


FETCHER = SourceFetcher()
