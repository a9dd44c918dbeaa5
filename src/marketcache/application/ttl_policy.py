# src/marketcache/application/ttl_policy.py
"""
TTL Policy - Cache Lifetimes by Data Recency

Decides how long a value may live in the ephemeral tier.

Security prices use a tiered policy based on how old the requested date is:
- today or later   -> CURRENT    (15 minutes, prices still move)
- 1 to 7 days ago  -> RECENT     (1 hour)
- older            -> HISTORICAL (24 hours, rarely revised)

Exchange rates use a flat 24 hours regardless of date.

Files that USE this module:
- marketcache.application.lookup (TTL for every cache write)
- marketcache.application.rates_service / prices_service (policy defaults)

Files that this module USES:
- None (pure policy)
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, timedelta
from enum import Enum

CURRENT_PRICE_CACHE_DURATION = timedelta(minutes=15)
RECENT_PRICE_CACHE_DURATION = timedelta(hours=1)
HISTORICAL_PRICE_CACHE_DURATION = timedelta(hours=24)
RATE_CACHE_DURATION = timedelta(hours=24)

RECENT_WINDOW_DAYS = 7


class TtlCategory(str, Enum):
    CURRENT = "current"
    RECENT = "recent"
    HISTORICAL = "historical"


def categorize(on: date, today: date, recent_days: int = RECENT_WINDOW_DAYS) -> TtlCategory:
    """
    Classify a date by its distance from today.

    Args:
        on: Date of the cached value
        today: Current date
        recent_days: Largest age in days still considered recent

    Returns:
        TtlCategory for the date
    """
    days_ago = (today - on).days
    if days_ago <= 0:
        return TtlCategory.CURRENT
    if days_ago <= recent_days:
        return TtlCategory.RECENT
    return TtlCategory.HISTORICAL


class TtlPolicy(ABC):
    @abstractmethod
    def duration_for(self, on: date, today: date) -> timedelta:
        """Cache lifetime for a value dated `on`."""
        raise NotImplementedError


class FlatTtlPolicy(TtlPolicy):
    """Same lifetime for every date."""

    def __init__(self, duration: timedelta):
        self.duration = duration

    def duration_for(self, on: date, today: date) -> timedelta:
        return self.duration


class TieredTtlPolicy(TtlPolicy):
    """Lifetime chosen by TtlCategory."""

    def __init__(
        self,
        current: timedelta,
        recent: timedelta,
        historical: timedelta,
        recent_days: int = RECENT_WINDOW_DAYS,
    ):
        self.durations = {
            TtlCategory.CURRENT: current,
            TtlCategory.RECENT: recent,
            TtlCategory.HISTORICAL: historical,
        }
        self.recent_days = recent_days

    def duration_for(self, on: date, today: date) -> timedelta:
        return self.durations[categorize(on, today, self.recent_days)]


RATE_TTL_POLICY = FlatTtlPolicy(RATE_CACHE_DURATION)
PRICE_TTL_POLICY = TieredTtlPolicy(
    current=CURRENT_PRICE_CACHE_DURATION,
    recent=RECENT_PRICE_CACHE_DURATION,
    historical=HISTORICAL_PRICE_CACHE_DURATION,
)
