# src/marketcache/adapters/providers/exchangerate_api.py
"""
ExchangeRate-API Provider for Currency Exchange Rates

This module implements the exchangerate-api.com client. With an API key it
uses the v6 endpoints (latest and per-day history). Without a key it can use
the keyless v4 'latest' endpoint, which has no history: recent ranges are
approximated with the latest rate and older ranges return nothing.

Files that USE this module:
- marketcache.app (registered in the exchange rate provider chain)
- tests.test_providers (unit tests)

Files that this module USES:
- marketcache.adapters.providers.base (ExchangeRateProvider interface)
- marketcache.config (settings for API key, URL and timeout)
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, List, Optional

from marketcache.adapters.providers.base import ExchangeRateProvider
from marketcache.config import settings
from marketcache.domain.errors import InvalidExchangeRateError, ProviderError
from marketcache.domain.models import ProviderResponse, Rate, RatePair, UsageData

log = logging.getLogger(__name__)

PAID_BASE_URL = "https://v6.exchangerate-api.com/v6"
FREE_TIER_LIMIT = 1500  # requests per month
RECENT_WINDOW = timedelta(days=7)


class ExchangeRateApiProvider(ExchangeRateProvider):
    name = "exchangerate_api"

    def __init__(
        self,
        api_key: Optional[str] = None,
        allow_free: Optional[bool] = None,
        free_url: Optional[str] = None,
        timeout: Optional[int] = None,
        **kwargs: Any,
    ):
        """
        Initialize ExchangeRate-API provider.

        Args:
            api_key: Optional API key (defaults to settings.exchangerate_api_key)
            allow_free: Whether the keyless endpoint counts as configured
                (defaults to settings.exchangerate_allow_free)
            free_url: Keyless endpoint base URL (defaults to settings.exchangerate_free_url)
            timeout: Optional HTTP timeout in seconds (defaults to settings.http_timeout_seconds)
        """
        super().__init__(timeout=timeout or settings.http_timeout_seconds, **kwargs)
        self.api_key = api_key if api_key is not None else settings.exchangerate_api_key
        self.allow_free = allow_free if allow_free is not None else settings.exchangerate_allow_free
        self.free_url = (free_url or settings.exchangerate_free_url).rstrip("/")

    @property
    def supports_historical_range(self) -> bool:  # type: ignore[override]
        return bool(self.api_key)

    @property
    def base_url(self) -> str:
        if self.api_key:
            return f"{PAID_BASE_URL}/{self.api_key}"
        return self.free_url

    def is_configured(self) -> bool:
        return bool(self.api_key) or self.allow_free

    def healthy(self) -> bool:
        try:
            parsed = self.get_json(f"{self.base_url}/latest/USD")
        except ProviderError:
            return False
        if not isinstance(parsed, dict):
            return False
        return parsed.get("result", "success") == "success" and bool(self._rates_table(parsed))

    def usage(self) -> ProviderResponse[UsageData]:
        # No usage endpoint; report the free tier quota
        return self.with_provider_response(
            lambda: UsageData(used=0, limit=FREE_TIER_LIMIT, utilization=0.0, plan="Free Tier")
        )

    # ================================
    #          Exchange Rates
    # ================================

    def fetch_one(self, pair: RatePair, on: date) -> ProviderResponse[Rate]:
        def fetch() -> Rate:
            self.require_configured()
            if on >= self.today():
                parsed = self.get_json(f"{self.base_url}/latest/{pair.from_currency}")
            else:
                parsed = self._get_history(pair, on)
            return Rate(
                date=on,
                from_currency=pair.from_currency,
                to_currency=pair.to_currency,
                rate=self._extract_rate(parsed, pair),
            )

        return self.with_provider_response(fetch)

    def fetch_range(self, pair: RatePair, start: date, end: date) -> ProviderResponse[List[Rate]]:
        def fetch() -> List[Rate]:
            self.require_configured()
            if self.supports_historical_range:
                return self._fetch_history_range(pair, start, end)
            return self._approximate_recent_range(pair, start, end)

        return self.with_provider_response(fetch)

    def _get_history(self, pair: RatePair, on: date) -> Any:
        if not self.api_key:
            raise ProviderError("exchangerate_api historical rates require an API key")
        return self.get_json(
            f"{self.base_url}/history/{pair.from_currency}/{on.year}/{on.month}/{on.day}"
        )

    def _fetch_history_range(self, pair: RatePair, start: date, end: date) -> List[Rate]:
        # One history call per day; bad days are skipped, transport errors abort
        rates: List[Rate] = []
        today = self.today()
        current = start
        while current <= end and current <= today:
            parsed = (
                self.get_json(f"{self.base_url}/latest/{pair.from_currency}")
                if current == today
                else self._get_history(pair, current)
            )
            try:
                value = self._extract_rate(parsed, pair)
            except InvalidExchangeRateError as e:
                self.report(e)
            else:
                rates.append(Rate(current, pair.from_currency, pair.to_currency, value))
            current += timedelta(days=1)
        return rates

    def _approximate_recent_range(self, pair: RatePair, start: date, end: date) -> List[Rate]:
        today = self.today()
        if start <= today - RECENT_WINDOW:
            log.warning(
                "exchangerate_api: historical data beyond 7 days requires an API key. Requested: %s to %s",
                start, end,
            )
            return []

        parsed = self.get_json(f"{self.base_url}/latest/{pair.from_currency}")
        value = self._extract_rate(parsed, pair)

        # Same latest rate for every day in range
        rates: List[Rate] = []
        current = start
        while current <= end and current <= today:
            rates.append(Rate(current, pair.from_currency, pair.to_currency, value))
            current += timedelta(days=1)
        return rates

    @staticmethod
    def _rates_table(parsed: Any) -> Optional[dict]:
        # v6 uses 'conversion_rates', the keyless v4 endpoint uses 'rates'
        if not isinstance(parsed, dict):
            return None
        table = parsed.get("conversion_rates") or parsed.get("rates")
        return table if isinstance(table, dict) else None

    def _extract_rate(self, parsed: Any, pair: RatePair):
        if not isinstance(parsed, dict):
            raise InvalidExchangeRateError("exchangerate_api returned non-dict JSON")
        if parsed.get("result", "success") != "success":
            raise InvalidExchangeRateError(
                f"API returned error: {parsed.get('error-type', 'unknown')}"
            )
        table = self._rates_table(parsed)
        value = table.get(pair.to_currency) if table else None
        if value is None:
            raise InvalidExchangeRateError(
                f"No rate found for {pair.from_currency} to {pair.to_currency}"
            )
        return value
