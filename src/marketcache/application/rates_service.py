# src/marketcache/application/rates_service.py
"""
Rates Service - Cached Exchange Rate Lookups

This module binds the tiered lookup engine to exchange rates. Rates are
cached for a flat 24 hours whatever their date, and converting a currency
into itself always yields exactly 1 without touching any tier.

Files that USE this module:
- marketcache.app (composition root and CLI commands)
- marketcache.application.maintenance (warm-up and reports)
- tests.test_rates_service (unit tests)

Files that this module USES:
- marketcache.application.lookup (MarketDataService engine)
- marketcache.application.fingerprint (rate keys)
- marketcache.application.ttl_policy (RATE_TTL_POLICY)
- marketcache.domain.models (Rate, RatePair)
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple

from marketcache.adapters.cache.base import Payload
from marketcache.application.fingerprint import rate_key, rate_prefix
from marketcache.application.lookup import MarketDataService
from marketcache.application.ttl_policy import RATE_TTL_POLICY
from marketcache.domain.models import Rate, RatePair

IDENTITY_RATE = Decimal("1")


class ExchangeRateService(MarketDataService[RatePair, Rate]):
    """Exchange rates through cache, store and the rate provider chain."""

    concept = "exchange_rates"

    def __init__(self, cache, store, providers, ttl_policy=RATE_TTL_POLICY, **kwargs: Any):
        super().__init__(cache, store, providers, ttl_policy, **kwargs)

    def fingerprint(self, key: RatePair, on: date) -> str:
        return rate_key(key, on)

    def prefix(self, key: Optional[RatePair] = None) -> str:
        return rate_prefix(key)

    def identity(self, key: RatePair, on: date) -> Tuple[str, str, date]:
        return (key.from_currency, key.to_currency, on)

    def key_of(self, value: Rate) -> RatePair:
        return value.pair

    def date_of(self, value: Rate) -> date:
        return value.date

    def to_payload(self, value: Rate) -> Payload:
        return {"rate": str(value.rate)}

    def from_payload(self, key: RatePair, on: date, payload: Payload) -> Rate:
        return Rate(date=on, from_currency=key.from_currency, to_currency=key.to_currency, rate=payload["rate"])

    def degenerate(self, key: RatePair, on: date) -> Optional[Rate]:
        # Same currency, no conversion needed
        if key.is_identity:
            return Rate(date=on, from_currency=key.from_currency, to_currency=key.to_currency, rate=IDENTITY_RATE)
        return None

    # Convenience wrappers taking plain currency codes

    def find_or_fetch_rate(
        self, from_currency: str, to_currency: str, on: Optional[date] = None, use_cache: bool = True
    ) -> Optional[Rate]:
        """
        Get the rate for one currency pair on one date.

        Args:
            from_currency: Currency converted from
            to_currency: Currency converted to
            on: Date of the rate (defaults to today)
            use_cache: Read and write the ephemeral tier

        Returns:
            Rate, or None when unavailable
        """
        return self.resolve(RatePair(from_currency, to_currency), on or self.today(), use_cache)

    def find_or_fetch_rates(
        self, from_currency: str, to_currency: str, dates: Iterable[date], use_cache: bool = True
    ) -> List[Rate]:
        """Get rates for many dates of one pair, ascending by date."""
        return self.resolve_batch(RatePair(from_currency, to_currency), dates, use_cache)
