# src/marketcache/application/maintenance.py
"""
Maintenance - Operational Commands over the Lookup Services

Implements the operator-facing tasks on top of the public service interface:
- status report (cache entries, durable records, providers, counters)
- cache clearing (all concepts or one)
- cache warm-up for commonly requested instruments
- provider usage report
- provider health probes

Files that USE this module:
- marketcache.app (CLI commands)
- tests.test_maintenance (unit tests)

Files that this module USES:
- marketcache.application.lookup (MarketDataService)
- marketcache.domain.models (RatePair, Security, UsageData)
"""
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from marketcache.application.lookup import MarketDataService
from marketcache.domain.models import RatePair, Security

logger = logging.getLogger(__name__)


def status_report(services: Sequence[MarketDataService]) -> Dict:
    """
    Build the cache/record status of every concept.

    Returns:
        Dictionary keyed by concept with cache entry count, record count,
        active provider, configured providers and counters
    """
    report: Dict = {}
    for service in services:
        active = service.providers.select()
        counters = service.stats.get_summary()["concepts"].get(service.concept, {})
        report[service.concept] = {
            "cached_entries": service.cached_count(),
            "records": service.record_count(),
            "active_provider": active.name if active else None,
            "configured_providers": service.providers.configured_names(),
            "provider_order": service.providers.names,
            "counters": counters,
        }
    return report


def clear_caches(services: Sequence[MarketDataService]) -> Dict[str, int]:
    """
    Remove every ephemeral entry of the given concepts; durable records stay.

    Returns:
        Number of entries removed per concept
    """
    removed = {service.concept: service.invalidate_all() for service in services}
    logger.info("Cleared caches: %s", removed)
    return removed


def recent_dates(today: date, days: int) -> List[date]:
    """The last `days` dates ending with today, ascending."""
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def warm_cache(service: MarketDataService, keys: Iterable, days: int) -> Dict[str, int]:
    """
    Pre-populate cache and store for the last `days` days of each key.

    Args:
        service: Rate or price service
        keys: RatePair or Security keys to warm
        days: Number of days back from today, today included

    Returns:
        Number of values available after warm-up, per key
    """
    dates = recent_dates(service.today(), days)
    warmed: Dict[str, int] = {}
    for key in keys:
        values = service.resolve_batch(key, dates)
        warmed[describe_key(key)] = len(values)
        logger.info("Warmed %s: %d/%d dates", describe_key(key), len(values), len(dates))
    return warmed


def usage_report(services: Sequence[MarketDataService]) -> Dict[str, Dict[str, Optional[Dict]]]:
    """
    Usage statistics of every configured provider, per concept.

    Returns:
        {concept: {provider: usage dict or None when unavailable}}
    """
    report: Dict[str, Dict[str, Optional[Dict]]] = {}
    for service in services:
        report[service.concept] = {
            name: asdict(usage) if usage is not None else None
            for name, usage in service.providers.usage().items()
        }
    return report


def health_report(services: Sequence[MarketDataService]) -> Dict[str, Dict[str, bool]]:
    """
    Probe every configured provider with a cheap request.

    Returns:
        {concept: {provider: healthy}}
    """
    report = {service.concept: service.providers.health() for service in services}
    for concept, probes in report.items():
        for name, ok in probes.items():
            if not ok:
                logger.warning("%s provider %s failed its health probe", concept, name)
    return report


def describe_key(key) -> str:
    if isinstance(key, RatePair):
        return f"{key.from_currency}/{key.to_currency}"
    if isinstance(key, Security):
        return f"{key.symbol}@{key.exchange_operating_mic}" if key.exchange_operating_mic else key.symbol
    return str(key)
