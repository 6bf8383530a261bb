"""
Bounded in-memory cache shared by the evaluator and the verifier.

Both caches store pure results (the same key always maps to the same value),
so a lost race only costs a duplicate computation.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Hashable, TypeVar
import threading

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """Thread-safe in-memory cache with FIFO half eviction."""

    def __init__(self, max_size: int = 1000):
        """Initialize the cache.

        Args:
            max_size: Maximum number of entries to keep
        """
        self._cache: dict[K, V] = {}
        self._max_size = max(1, max_size)
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: K) -> V | None:
        """Get a cached value, or None on a miss."""
        with self._lock:
            if key in self._cache:
                self._hits += 1
                return self._cache[key]
            self._misses += 1
            return None

    def put(self, key: K, value: V) -> None:
        """Store a value, evicting the oldest half when full."""
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_size:
                self._evict()
            self._cache[key] = value

    def invalidate(self, key: K) -> bool:
        """Drop one entry.

        Returns:
            True if the key was cached
        """
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    def invalidate_all(self) -> int:
        """Drop every entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Get from cache or compute and store.

        The computation runs outside the lock; two threads missing on the same
        key may both compute, and the later write wins with an equal value.

        Args:
            key: Cache key
            compute: Zero-argument callable producing the value

        Returns:
            The cached or freshly computed value
        """
        with self._lock:
            if key in self._cache:
                self._hits += 1
                return self._cache[key]
            self._misses += 1

        value = compute()
        self.put(key, value)
        return value

    def contains(self, key: K) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with size, max_size, hits, misses and hit_rate
        """
        with self._lock:
            total = self._hits + self._misses
            hit_rate = self._hits / total if total > 0 else 0.0
            return {
                "size": len(self._cache),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
            }

    def _evict(self) -> None:
        """Evict the oldest half of the entries (at least one)."""
        keys = list(self._cache.keys())
        evict_count = max(1, len(keys) // 2)
        for key in keys[:evict_count]:
            del self._cache[key]
