# src/marketcache/application/stats.py
"""
Cache Statistics - Track Tier Hits and Provider Activity

This module counts what the lookup services do, per data concept:
- Ephemeral cache hits
- Durable store hits
- Provider fetches, empty results and failures
- Durable records written
- Lookups that ended without a value

Provider failures are also counted per provider and keep the last error
message, so operators can see which provider is misbehaving.

Files that USE this module:
- marketcache.application.lookup (records every tier outcome)
- marketcache.application.maintenance (reports the summary)
- marketcache.app (one tracker per process, wired into providers as error reporter)

Files that this module USES:
- None (pure in-process counters)
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

logger = logging.getLogger(__name__)

CACHE_HIT = "cache_hits"
STORE_HIT = "store_hits"
PROVIDER_FETCH = "provider_fetches"
PROVIDER_FAILURE = "provider_failures"
RECORD_WRITE = "records_written"
NOT_FOUND = "not_found"

EVENTS = (CACHE_HIT, STORE_HIT, PROVIDER_FETCH, PROVIDER_FAILURE, RECORD_WRITE, NOT_FOUND)


@dataclass
class ProviderErrorStats:
    """Failure count and last error of one provider."""
    count: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[str] = None  # ISO datetime string


@dataclass
class ConceptStats:
    """Counters for one data concept."""
    counts: Dict[str, int] = field(default_factory=lambda: {e: 0 for e in EVENTS})

    @property
    def hit_ratio(self) -> float:
        """Share of lookups answered by cache or store."""
        hits = self.counts[CACHE_HIT] + self.counts[STORE_HIT]
        total = hits + self.counts[PROVIDER_FETCH] + self.counts[NOT_FOUND]
        return hits / total if total else 0.0


class CacheStats:
    """Thread-safe in-process statistics."""

    def __init__(self):
        self.start_time = datetime.now(timezone.utc).isoformat()
        self._concepts: Dict[str, ConceptStats] = defaultdict(ConceptStats)
        self._provider_errors: Dict[str, ProviderErrorStats] = defaultdict(ProviderErrorStats)
        self._lock = threading.Lock()

    def record(self, concept: str, event: str, count: int = 1) -> None:
        """
        Record one or more occurrences of an event.

        Args:
            concept: Data concept, e.g. "exchange_rates"
            event: One of EVENTS
            count: Number of occurrences
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown stats event: {event}")
        with self._lock:
            self._concepts[concept].counts[event] += count

    def record_provider_error(self, provider: str, error: Exception) -> None:
        """
        Record a provider failure or a malformed record the provider skipped.

        Args:
            provider: Provider name
            error: The error raised or reported by the adapter
        """
        with self._lock:
            stats = self._provider_errors[provider]
            stats.count += 1
            stats.last_error = str(error)
            stats.last_error_time = datetime.now(timezone.utc).isoformat()
        logger.debug("Recorded provider error for %s: %s", provider, error)

    def get_summary(self) -> Dict:
        """
        Get a snapshot of all counters.

        Returns:
            Dictionary with start time, per-concept counters and hit ratio,
            and per-provider error counts
        """
        with self._lock:
            return {
                "start_time": self.start_time,
                "concepts": {
                    name: {**stats.counts, "hit_ratio": round(stats.hit_ratio, 4)}
                    for name, stats in self._concepts.items()
                },
                "provider_errors": {
                    name: {
                        "count": stats.count,
                        "last_error": stats.last_error,
                        "last_error_time": stats.last_error_time,
                    }
                    for name, stats in self._provider_errors.items()
                },
            }

    def get_count(self, concept: str, event: str) -> int:
        with self._lock:
            return self._concepts[concept].counts[event] if concept in self._concepts else 0
