"""In-memory TTL cache.

Entries are immutable (value + absolute expiry on a monotonic clock). Writing
a key replaces its entry in a single assignment under the cache lock, so a
key never maps to more than one live entry.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fetchkit.domain.interfaces.cache import CacheService
from fetchkit.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0
DEFAULT_MAX_ITEMS = 512


@dataclass(frozen=True)
class CacheEntry:
    """Internal representation of a cache entry with expiry."""
    value: Any
    expiry_time: float  # Clock reading after which the entry is stale

    def is_expired(self, now: float) -> bool:
        return now >= self.expiry_time


class MemoryCacheService(CacheService):
    """Per-instance memory cache with TTL expiry and a size bound."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        max_items: Optional[int] = DEFAULT_MAX_ITEMS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the caching service.

        Args:
            default_ttl: TTL in seconds applied when set() is called without one.
            max_items: Upper bound on stored entries (None for unbounded).
            clock: Monotonic time source; injectable for tests.
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self.max_items = max_items
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = asyncio.Lock()
        logger.info(f"MemoryCacheService initialized (ttl={default_ttl}s, max={max_items})")

    def __len__(self) -> int:
        return len(self._entries)

    def _prune(self, now: float) -> None:
        """Removes expired items and evicts the oldest while over the size limit."""
        expired_keys = [k for k, v in self._entries.items() if v.is_expired(now)]
        for k in expired_keys:
            del self._entries[k]

        if self.max_items is None:
            return
        while len(self._entries) > self.max_items:
            # Oldest by insertion order
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug(f"Evicted cache entry: key={oldest_key}")

    async def get(self, key: CacheKey) -> Optional[Any]:
        """Returns the live value for key, or None on miss or expiry."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss for key: {key}")
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug(f"Cache entry expired for key: {key}")
                return None
            logger.debug(f"Cache hit for key: {key}")
            return entry.value

    async def set(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> None:
        """Stores value under key, replacing any previous entry."""
        effective_ttl = self.default_ttl if ttl is None else ttl
        async with self._lock:
            now = self._clock()
            # Re-insert so that eviction order follows the latest write
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(value=value, expiry_time=now + effective_ttl)
            self._prune(now)
        logger.debug(f"Stored item in cache: key={key}, ttl={effective_ttl}s")

    async def delete(self, key: CacheKey) -> None:
        async with self._lock:
            if self._entries.pop(key, None) is not None:
                logger.debug(f"Deleted item from cache: key={key}")

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
        logger.info("Cleared in-memory cache.")
