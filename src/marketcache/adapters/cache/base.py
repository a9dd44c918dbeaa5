# src/marketcache/adapters/cache/base.py
"""
Cache Store Interface - Ephemeral Tier Contract

Defines the protocol every ephemeral cache store implements. Payloads are
JSON-compatible dictionaries; a missing or expired key reads as None and is
never an error.

Files that USE this module:
- marketcache.adapters.cache.memory_store (MemoryCacheStore implements CacheStore)
- marketcache.adapters.cache.redis_store (RedisCacheStore implements CacheStore)
- marketcache.application.lookup (MarketDataService depends on CacheStore)

Files that this module USES:
- None (pure interface definition)
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional, Protocol

Payload = Dict[str, Any]


class CacheStore(Protocol):
    """Protocol for ephemeral, TTL-bounded key/value stores."""

    def read(self, key: str) -> Optional[Payload]:
        ...

    def write(self, key: str, payload: Payload, ttl: timedelta) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def delete_by_prefix(self, prefix: str) -> int:
        ...

    def count(self, prefix: str = "") -> int:
        ...


class NullCacheStore:
    """Cache store that holds nothing (CACHE_BACKEND=none)."""

    def read(self, key: str) -> Optional[Payload]:
        return None

    def write(self, key: str, payload: Payload, ttl: timedelta) -> None:
        return None

    def delete(self, key: str) -> None:
        return None

    def delete_by_prefix(self, prefix: str) -> int:
        return 0

    def count(self, prefix: str = "") -> int:
        return 0
