"""
TTLCache - small async-compatible cache for idempotent read results.

Features:
- TTL (Time To Live) per instance, checked lazily on lookup
- Bounded size with bulk eviction: a full cache is cleared before a new key
  is inserted
- One instance per read family, so key spaces never collide
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with its insertion time."""

    data: T
    timestamp: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """An entry stays valid while now - timestamp <= ttl."""
        return now - self.timestamp > ttl


class TTLCache(Generic[T]):
    """
    Async-compatible TTL cache with bulk eviction.

    Usage:
        cache = TTLCache(name="station_search", max_size=80)

        cached = await cache.get(key)
        if cached is not None:
            return cached

        data = await fetch_data()
        await cache.set(key, data)
    """

    def __init__(
        self,
        name: str,
        max_size: int = 80,
        ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ):
        self.name = name
        self._memory: dict[str, CacheEntry[T]] = {}
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    def __len__(self) -> int:
        return len(self._memory)

    def __contains__(self, key: str) -> bool:
        return key in self._memory

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def get(self, key: str) -> T | None:
        """
        Get value from cache.

        Returns the cached payload, or None when absent or expired. Expired
        entries are removed as a side effect.
        """
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key[:50]}")
                return None

            if entry.is_expired(self._clock(), self._ttl):
                del self._memory[key]
                self._stats.misses += 1
                self._stats.expirations += 1
                self._log(f"EXPIRED: {key[:50]}")
                return None

            self._stats.hits += 1
            self._log(f"HIT: {key[:50]}")
            return entry.data

    async def set(self, key: str, data: T) -> None:
        """Store a value, overwriting any previous entry for the key."""
        async with self._lock:
            if key not in self._memory and len(self._memory) >= self._max_size:
                self._stats.evictions += len(self._memory)
                self._log(f"FULL: clearing {len(self._memory)} entries")
                self._memory.clear()

            self._memory[key] = CacheEntry(data=data, timestamp=self._clock())
            self._log(f"SET: {key[:50]} (TTL: {self._ttl.total_seconds()}s)")

    async def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        async with self._lock:
            if key in self._memory:
                del self._memory[key]
                self._log(f"DELETE: {key[:50]}")
                return True
            return False

    async def clear(self) -> None:
        """Clear all cache entries."""
        async with self._lock:
            count = len(self._memory)
            self._memory.clear()
            self._log(f"CLEAR: {count} entries removed")

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[TTLCache:{self.name}] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

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
            "expirations": self.expirations,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
