"""Infrastructure helpers for fetching sources, caching and responses."""

from .cache import CACHE, ResultCache
from .network import FETCHER, SourceFetchError, SourceFetcher
from .responses import send_png, send_png_bytes

__all__ = [
    "CACHE",
    "ResultCache",
    "FETCHER",
    "SourceFetchError",
    "SourceFetcher",
    "send_png",
    "send_png_bytes",
]
