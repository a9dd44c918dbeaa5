# src/marketcache/adapters/providers/financial_modeling_prep.py
"""
Financial Modeling Prep Provider for Security Prices

This module implements the Financial Modeling Prep (FMP) client for fetching
security prices. Today's price comes from the quote endpoint; past prices and
ranges come from the historical-price-full endpoint. Rows without a date or
without both close and open prices are skipped and reported.

Files that USE this module:
- marketcache.app (registered in the security price provider chain)
- tests.test_providers (unit tests)

Files that this module USES:
- marketcache.adapters.providers.base (SecurityPriceProvider interface)
- marketcache.config (settings for API key, URL and timeout)
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional

from marketcache.adapters.providers.base import SecurityPriceProvider
from marketcache.config import settings
from marketcache.domain.errors import InvalidSecurityPriceError, ProviderError
from marketcache.domain.models import Price, ProviderResponse, Security, UsageData

log = logging.getLogger(__name__)

FREE_TIER_LIMIT = 250  # requests per day
DEFAULT_CURRENCY = "USD"  # FMP quotes in USD


class FinancialModelingPrepProvider(SecurityPriceProvider):
    name = "financial_modeling_prep"
    supports_historical_range = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        **kwargs: Any,
    ):
        """
        Initialize Financial Modeling Prep provider.

        Args:
            api_key: Optional API key (defaults to settings.fmp_api_key)
            base_url: Optional custom API URL (defaults to settings.fmp_url)
            timeout: Optional HTTP timeout in seconds (defaults to settings.http_timeout_seconds)
        """
        super().__init__(timeout=timeout or settings.http_timeout_seconds, **kwargs)
        self.api_key = api_key if api_key is not None else settings.fmp_api_key
        self.url = (base_url or settings.fmp_url).rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def healthy(self) -> bool:
        if not self.is_configured():
            return False
        try:
            parsed = self.get_json(f"{self.url}/v3/profile/AAPL", params={"apikey": self.api_key})
        except ProviderError:
            return False
        return isinstance(parsed, list) and len(parsed) > 0

    def usage(self) -> ProviderResponse[UsageData]:
        # FMP has no usage endpoint on the free plan
        return self.with_provider_response(
            lambda: UsageData(used=0, limit=FREE_TIER_LIMIT, utilization=0.0, plan="Free Tier")
        )

    # ================================
    #           Securities
    # ================================

    def fetch_one(self, security: Security, on: date) -> ProviderResponse[Price]:
        def fetch() -> Price:
            self.require_configured()
            today = self.today()
            if on >= today:
                return self._fetch_quote(security, today)

            prices = self._fetch_historical(security, on, on)
            if not prices:
                raise InvalidSecurityPriceError(f"No price for {security.symbol} on {on}")
            return prices[0]

        return self.with_provider_response(fetch)

    def fetch_range(self, security: Security, start: date, end: date) -> ProviderResponse[List[Price]]:
        def fetch() -> List[Price]:
            self.require_configured()
            return self._fetch_historical(security, start, end)

        return self.with_provider_response(fetch)

    def _fetch_quote(self, security: Security, today: date) -> Price:
        data = self.get_json(
            f"{self.url}/v3/quote/{security.symbol}", params={"apikey": self.api_key}
        )
        if not isinstance(data, list) or not data or not isinstance(data[0], dict) or data[0].get("price") is None:
            raise InvalidSecurityPriceError(f"No quote returned for {security.symbol}")

        return Price(
            symbol=security.symbol,
            date=today,
            price=data[0]["price"],
            currency=DEFAULT_CURRENCY,
            exchange_operating_mic=security.exchange_operating_mic,
        )

    def _fetch_historical(self, security: Security, start: date, end: date) -> List[Price]:
        data = self.get_json(
            f"{self.url}/v3/historical-price-full/{security.symbol}",
            params={"from": start.isoformat(), "to": end.isoformat(), "apikey": self.api_key},
        )
        if not isinstance(data, dict):
            raise InvalidSecurityPriceError(f"FMP returned non-dict JSON for {security.symbol}")

        prices: List[Price] = []
        for row in data.get("historical") or []:
            if not isinstance(row, dict):
                continue
            day = row.get("date")
            close_price = row.get("close")
            open_price = row.get("open")

            if day is None or (close_price is None and open_price is None):
                self.report(InvalidSecurityPriceError(
                    f"{self.name} returned invalid price data for security {security.symbol} on: {day}"
                ))
                continue

            prices.append(Price(
                symbol=security.symbol,
                date=day,
                price=close_price if close_price is not None else open_price,
                currency=DEFAULT_CURRENCY,
                exchange_operating_mic=security.exchange_operating_mic,
            ))
        return prices
