"""Time-bounded cache of catalog query pages."""

import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger()


@dataclass
class CacheEntry:
    """A cached value and when it was stored."""

    value: Any
    stored_at: float


class ProductQueryCache:
    """TTL and size bounded cache keyed by the full query.

    When the cache is full, expired entries are dropped first; if that
    is not enough, the oldest half is evicted.

    Example usage:
        cache = ProductQueryCache(ttl_seconds=300, max_entries=100)
        page = cache.get(query)
        if page is None:
            page = await load(query)
            cache.put(query, page)
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_seconds: Entry lifetime.
            max_entries: Maximum number of entries kept.
            clock: Monotonic time source.
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Any | None:
        """Get a fresh cached value.

        Args:
            key: Query key.

        Returns:
            Cached value, or None if missing or expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: Hashable, value: Any) -> None:
        """Store a value.

        Args:
            key: Query key.
            value: Value to cache.
        """
        if self.max_entries <= 0:
            return
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self._evict()
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def clear(self) -> int:
        """Drop every entry.

        Returns:
            Number of entries dropped.
        """
        count = len(self._entries)
        self._entries.clear()
        if count:
            logger.debug("Query cache cleared", entries=count)
        return count

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self.ttl_seconds

    def _evict(self) -> None:
        """Make room for one more entry."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]

        removed = len(expired)
        if len(self._entries) >= self.max_entries:
            oldest = sorted(self._entries, key=lambda key: self._entries[key].stored_at)
            for key in oldest[: max(self.max_entries // 2, 1)]:
                del self._entries[key]
                removed += 1

        logger.debug("Query cache evicted entries", removed=removed)
