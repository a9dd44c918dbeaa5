# src/marketcache/adapters/cache/__init__.py
"""
Cache Adapters - Ephemeral Tier Implementations

All stores implement the CacheStore protocol.
"""

from marketcache.adapters.cache.base import CacheStore, NullCacheStore, Payload
from marketcache.adapters.cache.memory_store import MemoryCacheStore
from marketcache.adapters.cache.redis_store import RedisCacheStore

__all__ = [
    "CacheStore",
    "Payload",
    "NullCacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
]
