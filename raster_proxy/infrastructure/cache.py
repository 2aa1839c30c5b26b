from __future__ import annotations

import time
from typing import Dict, Optional, Tuple

from ..config import SETTINGS


CacheEntry = Tuple[float, bytes]


class ResultCache:
    """Encoded operation results, keyed by operation and source, expiring after ``ttl``.

    ``get`` and ``put`` accept per-call ``ttl`` / ``max_entries`` so callers
    holding runtime settings can override the construction-time limits.
    """

    def __init__(self, ttl: Optional[float] = None, max_entries: Optional[int] = None) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._ttl = SETTINGS.cache_ttl if ttl is None else ttl
        self._max_entries = SETTINGS.cache_size if max_entries is None else max_entries

    @staticmethod
    def key_for(operation: str, *sources: Optional[str], **params: object) -> str:
        parts = [operation, *(source or "" for source in sources)]
        parts.extend(f"{name}={params[name]}" for name in sorted(params))
        return "|".join(parts)

    def get(self, key: str, ttl: Optional[float] = None) -> Optional[bytes]:
        ttl = self._ttl if ttl is None else ttl
        entry = self._entries.get(key)
        if not entry:
            return None
        timestamp, data = entry
        if ttl <= 0 or time.time() - timestamp > ttl:
            self._entries.pop(key, None)
            return None
        return data

    def put(
        self,
        key: str,
        data: bytes,
        ttl: Optional[float] = None,
        max_entries: Optional[int] = None,
    ) -> None:
        ttl = self._ttl if ttl is None else ttl
        max_entries = self._max_entries if max_entries is None else max_entries
        if ttl <= 0 or max_entries <= 0:
            return
        if key not in self._entries:
            while self._entries and len(self._entries) >= max_entries:
                oldest = min(self._entries.items(), key=lambda item: item[1][0])[0]
                self._entries.pop(oldest, None)
        self._entries[key] = (time.time(), data)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


CACHE = ResultCache()
