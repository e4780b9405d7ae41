"""Interface for caching mechanisms.

Defines the contract for storing, retrieving, and managing cached data
with per-entry TTLs. Implementations are in-memory and per instance.
"""

import abc
from typing import Any, Optional

from fetchkit.domain.models.common import CacheKey


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item from the cache asynchronously.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached item if found and not expired, otherwise None.
        """
        pass

    @abc.abstractmethod
    async def set(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> None:
        """Stores an item, atomically replacing any previous entry for the key.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl: Time-to-live in seconds (uses the service default if None).
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Deletes an item from the cache asynchronously."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Clears all items from the cache asynchronously."""
        pass
