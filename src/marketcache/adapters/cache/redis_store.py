# src/marketcache/adapters/cache/redis_store.py
"""
Redis Cache Store - Shared Ephemeral Tier

Redis-backed cache store so several worker processes share one ephemeral
tier. Payloads are stored as JSON with SETEX; prefix deletion walks keys
with SCAN.

Files that USE this module:
- marketcache.app (CACHE_BACKEND=redis)
- tests.test_cache_stores (unit tests with a mocked client)

Files that this module USES:
- marketcache.adapters.cache.base (Payload type)
"""
from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Any, Optional

import redis

from marketcache.adapters.cache.base import Payload

logger = logging.getLogger(__name__)


class RedisCacheStore:
    """Cache store backed by a Redis server."""

    def __init__(self, redis_url: str = "redis://localhost:6379/0", client: Optional[Any] = None):
        """
        Initialize Redis cache store.

        Args:
            redis_url: Redis connection URL
            client: Optional pre-built client (tests pass a mock)
        """
        self.client = client if client is not None else redis.Redis.from_url(redis_url)

    def read(self, key: str) -> Optional[Payload]:
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            # An unreachable cache reads as a miss
            logger.warning("Redis read failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            self.delete(key)
            return None

    def write(self, key: str, payload: Payload, ttl: timedelta) -> None:
        seconds = max(int(ttl.total_seconds()), 1)
        try:
            self.client.setex(key, seconds, json.dumps(payload))
        except redis.RedisError as e:
            logger.warning("Redis write failed for %s: %s", key, e)

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning("Redis delete failed for %s: %s", key, e)

    def delete_by_prefix(self, prefix: str) -> int:
        try:
            keys = list(self.client.scan_iter(match=f"{prefix}*"))
            if keys:
                self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Redis prefix delete failed for %s: %s", prefix, e)
            return 0
        return len(keys)

    def count(self, prefix: str = "") -> int:
        try:
            return sum(1 for _ in self.client.scan_iter(match=f"{prefix}*"))
        except redis.RedisError as e:
            logger.warning("Redis count failed for %s: %s", prefix, e)
            return 0

    def close(self) -> None:
        self.client.close()
