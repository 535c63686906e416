"""
Time-boxed response cache.

Absorbs repeated requests for the same URL within one refresh cycle so
the daily API quota is not spent twice on identical data.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from discopic.config.constants import RESPONSE_CACHE_TTL_MS
from discopic.utils.time import get_timestamp_ms


@dataclass(slots=True)
class CacheEntry:
    """Cached response payload with its storage time."""

    data: Any
    stored_at_ms: int


class ResponseCache:
    """
    URL -> parsed response cache with a fixed time-to-live.

    Expired entries are dropped lazily on lookup.
    """

    def __init__(
        self,
        ttl_ms: int = RESPONSE_CACHE_TTL_MS,
        clock: Callable[[], int] = get_timestamp_ms,
    ) -> None:
        """
        Initialize cache.

        Args:
            ttl_ms: Entry lifetime in milliseconds; 0 disables caching.
            clock: Millisecond clock, injectable for tests.
        """
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any | None:
        """Get a live entry, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._clock() - entry.stored_at_ms >= self._ttl_ms:
            del self._entries[key]
            self._misses += 1
            return None

        self._hits += 1
        return entry.data

    def set(self, key: str, data: Any) -> None:
        """Store a response."""
        if self._ttl_ms <= 0:
            return
        self._entries[key] = CacheEntry(data=data, stored_at_ms=self._clock())

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    @property
    def size(self) -> int:
        """Number of stored entries, including not yet evicted expired ones."""
        return len(self._entries)

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses
