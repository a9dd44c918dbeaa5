# src/marketcache/application/batch.py
"""
Batch Coalescing - Steps of a Multi-Date Lookup

A batch lookup runs in three steps, each a plain function here:

1. partition_dates: answer what the cache/store tiers can, collect the rest
2. missing_span:    the single [min, max] range to fetch for the rest
3. merge_by_date:   combine tier hits and fetched values, ascending by date

The range fetch itself (provider call, persist, cache) lives in
MarketDataService because it needs the tiers.

Files that USE this module:
- marketcache.application.lookup (MarketDataService.resolve_batch)
- tests.test_batch (unit tests)

Files that this module USES:
- None (pure functions)
"""
from __future__ import annotations

from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

V = TypeVar("V")


def partition_dates(
    dates: Iterable[date],
    lookup: Callable[[date], Optional[V]],
) -> Tuple[Dict[date, V], List[date]]:
    """
    Split dates into those a tier lookup satisfies and those it does not.

    Args:
        dates: Requested dates (duplicates are looked up once)
        lookup: Cache/store lookup for one date, None on miss

    Returns:
        (satisfied values by date, missing dates in ascending order)
    """
    satisfied: Dict[date, V] = {}
    missing: List[date] = []
    for on in sorted(set(dates)):
        value = lookup(on)
        if value is None:
            missing.append(on)
        else:
            satisfied[on] = value
    return satisfied, missing


def missing_span(missing: Sequence[date]) -> Optional[Tuple[date, date]]:
    """Inclusive range covering every missing date, or None when nothing is missing."""
    if not missing:
        return None
    return min(missing), max(missing)


def merge_by_date(
    satisfied: Mapping[date, V],
    fetched: Mapping[date, V],
    missing: Iterable[date],
) -> List[V]:
    """
    Build the batch result.

    Fetched values are kept only for dates that were requested and missing;
    missing dates without a fetched value are dropped.

    Returns:
        Values sorted ascending by date
    """
    result: Dict[date, V] = dict(satisfied)
    for on in missing:
        if on in fetched:
            result[on] = fetched[on]
    return [result[on] for on in sorted(result)]
