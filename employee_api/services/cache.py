"""
CacheManager - Async-compatible in-memory cache for derived employee views.

Features:
- Entries live until explicitly evicted (no TTL, no size bound)
- Full invalidation via evict_all() after every successful write
- Thread-safe async operations
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    timestamp: datetime


@dataclass
class CacheResult(Generic[T]):
    """Result from cache lookup. Distinguishes a cached ``None`` from a miss."""

    data: T
    cached_at: datetime


class CacheManager:
    """
    Async-compatible cache manager keyed by query signature.

    Usage:
        cache = CacheManager()

        # Try to get from cache
        result = await cache.get("all")
        if result:
            return result.data

        # Fetch fresh data and cache it
        data = await fetch_data()
        await cache.put("all", data)

        # After a write
        await cache.evict_all()
    """

    def __init__(self, debug: bool = False):
        self._memory: dict[str, CacheEntry[Any]] = {}
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    async def get(self, key: str) -> CacheResult[Any] | None:
        """
        Get value from cache.

        Returns CacheResult if present, None otherwise.
        """
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key[:50]}")
                return None

            self._stats.hits += 1
            self._log(f"HIT: {key[:50]}")
            return CacheResult(data=entry.data, cached_at=entry.timestamp)

    async def put(self, key: str, data: Any) -> None:
        """Store a value under ``key``, replacing any previous value."""
        entry = CacheEntry(data=data, timestamp=datetime.now())

        async with self._lock:
            self._memory[key] = entry
            self._log(f"PUT: {key[:50]}")

    async def evict_all(self) -> int:
        """Remove every entry. Returns the number of entries removed."""
        async with self._lock:
            count = len(self._memory)
            self._memory.clear()
            self._stats.evictions += count
            self._stats.invalidations += 1
            self._log(f"EVICT_ALL: {count} entries removed")
            return count

    def keys(self) -> list[str]:
        """Get keys of all cached entries."""
        return list(self._memory.keys())

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheManager] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "invalidations": self.invalidations,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
