"""TTL cache for search responses."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, Tuple, TypeVar

from loguru import logger

T = TypeVar("T")


class ResultCache(Generic[T]):
    """Insertion-ordered cache with per-entry expiry.

    Entries older than ``ttl_seconds`` are dropped on access. Above
    ``max_entries`` the oldest entries are evicted first.
    """

    def __init__(
        self,
        ttl_seconds: float = 900.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, T]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: T) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), value)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cache entry", key=evicted)

    def clear(self, prefix: Optional[str] = None) -> int:
        """Drop every entry, or only those whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        if prefix is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed

        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)
