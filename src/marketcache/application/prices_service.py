# src/marketcache/application/prices_service.py
"""
Prices Service - Cached Security Price Lookups

This module binds the tiered lookup engine to security prices. Cache
lifetimes depend on how old the price is (see ttl_policy.PRICE_TTL_POLICY).

Files that USE this module:
- marketcache.app (composition root and CLI commands)
- marketcache.application.maintenance (warm-up and reports)
- tests.test_prices_service (unit tests)

Files that this module USES:
- marketcache.application.lookup (MarketDataService engine)
- marketcache.application.fingerprint (price keys)
- marketcache.application.ttl_policy (PRICE_TTL_POLICY)
- marketcache.domain.models (Price, Security)
"""
from __future__ import annotations

from datetime import date
from typing import Any, Iterable, List, Optional, Tuple

from marketcache.adapters.cache.base import Payload
from marketcache.application.fingerprint import price_key, price_prefix
from marketcache.application.lookup import MarketDataService
from marketcache.application.ttl_policy import PRICE_TTL_POLICY
from marketcache.domain.models import Price, Security


class SecurityPriceService(MarketDataService[Security, Price]):
    """Security prices through cache, store and the price provider chain."""

    concept = "security_prices"

    def __init__(self, cache, store, providers, ttl_policy=PRICE_TTL_POLICY, **kwargs: Any):
        super().__init__(cache, store, providers, ttl_policy, **kwargs)

    def fingerprint(self, key: Security, on: date) -> str:
        return price_key(key, on)

    def prefix(self, key: Optional[Security] = None) -> str:
        return price_prefix(key)

    def identity(self, key: Security, on: date) -> Tuple[str, Optional[str], date]:
        return (key.symbol, key.exchange_operating_mic, on)

    def key_of(self, value: Price) -> Security:
        return value.security

    def date_of(self, value: Price) -> date:
        return value.date

    def to_payload(self, value: Price) -> Payload:
        return {"price": str(value.price), "currency": value.currency, "date": value.date.isoformat()}

    def from_payload(self, key: Security, on: date, payload: Payload) -> Price:
        # Live quotes cached under a future date keep the quote's own date
        dated = payload.get("date")
        return Price(
            symbol=key.symbol,
            date=date.fromisoformat(dated) if dated else on,
            price=payload["price"],
            currency=payload["currency"],
            exchange_operating_mic=key.exchange_operating_mic,
        )

    def find_or_fetch_price(
        self,
        symbol: str,
        on: Optional[date] = None,
        exchange_operating_mic: Optional[str] = None,
        use_cache: bool = True,
    ) -> Optional[Price]:
        """
        Get the price of one security on one date.

        Args:
            symbol: Ticker symbol
            on: Date of the price (defaults to today)
            exchange_operating_mic: Exchange MIC, if known
            use_cache: Read and write the ephemeral tier

        Returns:
            Price, or None when unavailable
        """
        return self.resolve(Security(symbol, exchange_operating_mic), on or self.today(), use_cache)

    def fetch_prices_batch(
        self,
        symbol: str,
        dates: Iterable[date],
        exchange_operating_mic: Optional[str] = None,
        use_cache: bool = True,
    ) -> List[Price]:
        """Get prices for many dates of one security, ascending by date."""
        return self.resolve_batch(Security(symbol, exchange_operating_mic), dates, use_cache)
