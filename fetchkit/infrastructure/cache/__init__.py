"""Caching Service Implementation.

Provides the in-memory implementation of the CacheService interface with
per-entry TTLs. State is per instance; nothing is persisted to disk.
Bounded Context: Cache Management
"""

from fetchkit.infrastructure.cache.caching_service import CacheEntry, MemoryCacheService

__all__ = ["CacheEntry", "MemoryCacheService"]
