# src/marketcache/adapters/providers/frankfurter.py
"""
Frankfurter API Provider for Currency Exchange Rates

This module implements a client for the Frankfurter API, which serves the
European Central Bank reference rates without authentication. It supports
single dates and native date ranges; ranges only contain business days.

Files that USE this module:
- marketcache.app (registered in the exchange rate provider chain)
- tests.test_providers (unit tests)

Files that this module USES:
- marketcache.adapters.providers.base (ExchangeRateProvider interface)
- marketcache.config (settings for URL, enable flag and timeout)
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional

from marketcache.adapters.providers.base import ExchangeRateProvider
from marketcache.config import settings
from marketcache.domain.errors import InvalidExchangeRateError, ProviderError
from marketcache.domain.models import ProviderResponse, Rate, RatePair, UsageData

log = logging.getLogger(__name__)


class FrankfurterProvider(ExchangeRateProvider):
    name = "frankfurter"
    supports_historical_range = True

    def __init__(
        self,
        base_url: Optional[str] = None,
        enabled: Optional[bool] = None,
        timeout: Optional[int] = None,
        **kwargs: Any,
    ):
        """
        Initialize Frankfurter provider.

        Args:
            base_url: Optional custom API URL (defaults to settings.frankfurter_url)
            enabled: Whether the provider takes part in the chain (defaults to settings.frankfurter_enabled)
            timeout: Optional HTTP timeout in seconds (defaults to settings.http_timeout_seconds)
        """
        super().__init__(timeout=timeout or settings.http_timeout_seconds, **kwargs)
        self.url = (base_url or settings.frankfurter_url).rstrip("/")
        self.enabled = enabled if enabled is not None else settings.frankfurter_enabled

    def is_configured(self) -> bool:
        # No credentials needed
        return self.enabled

    def healthy(self) -> bool:
        try:
            parsed = self.get_json(f"{self.url}/latest", params={"from": "USD", "to": "EUR"})
        except ProviderError:
            return False
        return isinstance(parsed, dict) and "rates" in parsed

    def usage(self) -> ProviderResponse[UsageData]:
        return self.with_provider_response(
            lambda: UsageData(used=0, limit=0, utilization=0.0, plan="Open Access")
        )

    def fetch_one(self, pair: RatePair, on: date) -> ProviderResponse[Rate]:
        def fetch() -> Rate:
            self.require_configured()
            path = "latest" if on >= self.today() else on.isoformat()
            parsed = self.get_json(f"{self.url}/{path}", params=self._params(pair))
            rates = parsed.get("rates") if isinstance(parsed, dict) else None
            if not isinstance(rates, dict) or rates.get(pair.to_currency) is None:
                raise InvalidExchangeRateError(
                    f"No rate found for {pair.from_currency} to {pair.to_currency} on {on}"
                )
            # Weekends resolve to the previous business day's fixing
            return Rate(on, pair.from_currency, pair.to_currency, rates[pair.to_currency])

        return self.with_provider_response(fetch)

    def fetch_range(self, pair: RatePair, start: date, end: date) -> ProviderResponse[List[Rate]]:
        def fetch() -> List[Rate]:
            self.require_configured()
            parsed = self.get_json(
                f"{self.url}/{start.isoformat()}..{end.isoformat()}", params=self._params(pair)
            )
            by_day = parsed.get("rates") if isinstance(parsed, dict) else None
            if not isinstance(by_day, dict):
                raise InvalidExchangeRateError("Frankfurter response missing 'rates'")

            rates: List[Rate] = []
            for day, values in by_day.items():
                value = values.get(pair.to_currency) if isinstance(values, dict) else None
                if value is None:
                    self.report(InvalidExchangeRateError(
                        f"Frankfurter returned no {pair.to_currency} rate on {day}"
                    ))
                    continue
                rates.append(Rate(day, pair.from_currency, pair.to_currency, value))
            return rates

        return self.with_provider_response(fetch)

    @staticmethod
    def _params(pair: RatePair) -> dict:
        return {"from": pair.from_currency, "to": pair.to_currency}
