"""
In-process TTL cache shared by the transcript cache and the search-result cache.

- Entries are valid while now - loaded_at < ttl; expired entries are dropped
  when they are next looked up.
- The capacity is soft: inserting past it sweeps every expired entry, but
  fresh entries are never evicted early.
- A lock guards the map so the cache can be shared with worker threads.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CachedArtifact(Generic[T]):
    """Cached value with the time it was loaded."""
    value: T
    loaded_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return (now - self.loaded_at) < ttl


class TTLCache(Generic[T]):
    """TTL + soft-capacity cache keyed by any hashable."""

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: Dict[Hashable, CachedArtifact[T]] = {}
        self._lock = threading.Lock()

        # Stats
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Optional[T]:
        """Return the cached value, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if not entry.is_fresh(self._clock(), self._ttl):
                del self._entries[key]
                self._evictions += 1
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def set(self, key: Hashable, value: T) -> None:
        """Store a value, sweeping expired entries once past capacity."""
        with self._lock:
            self._entries[key] = CachedArtifact(value=value, loaded_at=self._clock())
            if len(self._entries) > self._max_entries:
                removed = self._sweep_locked()
                if removed:
                    logger.debug("%s: swept %d expired entries", self.name, removed)

    def sweep(self) -> int:
        """Remove all expired entries. Returns how many were removed."""
        with self._lock:
            return self._sweep_locked()

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired_keys = [
            k for k, v in self._entries.items()
            if not v.is_fresh(now, self._ttl)
        ]
        for k in expired_keys:
            del self._entries[k]
        self._evictions += len(expired_keys)
        return len(expired_keys)

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict:
        """Return cache statistics for monitoring."""
        with self._lock:
            return {
                "name": self.name,
                "size": len(self._entries),
                "max_entries": self._max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": round(
                    self._hits / max(1, self._hits + self._misses) * 100, 1
                )
            }
