"""Small TTL cache for memoising analytics results by ``cacheKey``."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

LOGGER = logging.getLogger(__name__)


class AnalyticsCache:
    """Bounded, time-limited store for computed analytics payloads.

    Entries expire ``ttl_seconds`` after they are stored. When ``max_size``
    entries are held, storing a new key evicts the oldest one first.
    """

    def __init__(
        self,
        ttl_seconds: float = 120.0,
        max_size: int = 30,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.ttl_seconds = float(ttl_seconds)
        self.max_size = int(max_size)
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        """Membership of an unexpired entry; leaves counters and entries untouched."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._expired(entry[0], self._clock())

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at >= self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            stored_at, value = entry
            if self._expired(stored_at, self._clock()):
                del self._entries[key]
                self._misses += 1
                LOGGER.debug("Analytics cache entry %s expired", key)
                return None
            self._hits += 1
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            while len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                LOGGER.debug("Evicted analytics cache entry %s", evicted)
            self._entries[key] = (self._clock(), value)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            now = self._clock()
            expired = sum(
                1 for stored_at, _ in self._entries.values() if self._expired(stored_at, now)
            )
            return {
                "size": len(self._entries),
                "valid": len(self._entries) - expired,
                "expired": expired,
                "hits": self._hits,
                "misses": self._misses,
            }


__all__ = ["AnalyticsCache"]
