# src/marketcache/adapters/cache/memory_store.py
"""
Memory Cache Store - In-Process Ephemeral Tier

Thread-safe in-memory key/value store with per-key expiry and a capacity
bound. When full, the entry written longest ago is evicted first.

Files that USE this module:
- marketcache.app (default cache backend)
- tests.* (stands in for the ephemeral tier)

Files that this module USES:
- marketcache.adapters.cache.base (Payload type)
"""
from __future__ import annotations

import copy
import logging
import threading
import time
from collections import OrderedDict
from datetime import timedelta
from typing import Callable, Optional, Tuple

from marketcache.adapters.cache.base import Payload

logger = logging.getLogger(__name__)


class MemoryCacheStore:
    """In-memory cache store with TTL expiry."""

    def __init__(self, max_entries: int = 10_000, clock: Callable[[], float] = time.monotonic):
        """
        Initialize memory cache store.

        Args:
            max_entries: Maximum number of live entries before eviction
            clock: Monotonic seconds source (injectable for tests)
        """
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Payload]]" = OrderedDict()
        self._lock = threading.Lock()

    def read(self, key: str) -> Optional[Payload]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return copy.deepcopy(payload)

    def write(self, key: str, payload: Payload, ttl: timedelta) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock() + ttl.total_seconds(), copy.deepcopy(payload))
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted)

    def ttl_remaining(self, key: str) -> Optional[float]:
        """Seconds until `key` expires, or None when absent."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            remaining = entry[0] - self._clock()
            return remaining if remaining > 0 else None

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_by_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def count(self, prefix: str = "") -> int:
        now = self._clock()
        with self._lock:
            return sum(
                1 for k, (expires_at, _) in self._entries.items()
                if k.startswith(prefix) and expires_at > now
            )
