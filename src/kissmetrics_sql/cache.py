# Kissmetrics SQL Adapter
# File: cache.py
# Version: v1

"""In-process TTL cache for per-product event and property catalogs.

Catalog listings are fetched with the maximum page size, so they are
worth keeping between queries against the same product.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0


class TTLCache:
    """Per-entry TTL with oldest-first eviction past ``max_entries``.

    A TTL or size of 0 disables caching.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 64,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = int(ttl_seconds)
        self.max_entries = int(max_entries)
        self._clock = clock
        self._store: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0 and self.max_entries > 0

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        entry = self._store.get(key) if self.enabled else None
        if entry is None:
            self._stats.misses += 1
            return None

        expires_at, value = entry
        if expires_at < self._clock():
            self._stats.misses += 1
            self._stats.expirations += 1
            self._store.pop(key, None)
            return None

        self._store.move_to_end(key)
        self._stats.hits += 1
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return

        self._store[key] = (self._clock() + self.ttl_seconds, value)
        self._store.move_to_end(key)
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)
            self._stats.evictions += 1

    def clear(self) -> None:
        self._store.clear()

    def stats(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "ttl_seconds": self.ttl_seconds,
            "max_entries": self.max_entries,
            "size": len(self._store),
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "evictions": self._stats.evictions,
            "expirations": self._stats.expirations,
        }
