# src/marketcache/adapters/providers/base.py
"""
Base Provider Interfaces for Market Data Providers

This module defines the abstract base classes for all market data providers.
It establishes the contract every provider adapter follows:

- fetch_one(identity, date)            -> ProviderResponse[value]
- fetch_range(identity, start, end)    -> ProviderResponse[list of values]
- is_configured()                      -> bool
- usage()                              -> ProviderResponse[UsageData]
- healthy()                            -> bool

Adapters never raise out of these methods: failures come back as a failed
ProviderResponse carrying the exception.

Files that USE this module:
- marketcache.adapters.providers.exchangerate_api (ExchangeRateProvider implementation)
- marketcache.adapters.providers.frankfurter (ExchangeRateProvider implementation)
- marketcache.adapters.providers.financial_modeling_prep (SecurityPriceProvider implementation)
- marketcache.application.provider_chain (selects adapters by is_configured)
- tests.test_providers (unit tests)

Files that this module USES:
- marketcache.domain (models, ProviderResponse and provider errors)
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from decimal import InvalidOperation
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from marketcache.domain.errors import ProviderError, ProviderNotConfiguredError
from marketcache.domain.models import (
    Price,
    ProviderResponse,
    Rate,
    RatePair,
    Security,
    UsageData,
)
from marketcache.shared.clock import utc_today

log = logging.getLogger(__name__)

T = TypeVar("T")

# Errors an adapter converts into a failed ProviderResponse
ADAPTER_ERRORS = (
    ProviderError,
    requests.exceptions.RequestException,
    ValueError,
    KeyError,
    TypeError,
    InvalidOperation,
)


class MarketDataProvider(ABC):
    """Capabilities shared by every provider adapter."""

    name: str = "provider"
    # Whether fetch_range returns real per-day history for arbitrary past ranges
    supports_historical_range: bool = True

    def __init__(
        self,
        timeout: int = 10,
        today: Optional[Callable[[], date]] = None,
        error_reporter: Optional[Callable[[str, Exception], None]] = None,
    ):
        """
        Args:
            timeout: HTTP timeout in seconds
            today: Callable returning the current date (defaults to UTC today)
            error_reporter: Optional hook called with (provider name, error) for
                malformed data the adapter skips instead of failing the call
        """
        self.timeout = timeout
        self.today = today or utc_today
        self.error_reporter = error_reporter

    @abstractmethod
    def is_configured(self) -> bool:
        """Return True when the provider holds the credentials it needs."""
        raise NotImplementedError

    @abstractmethod
    def usage(self) -> ProviderResponse[UsageData]:
        """Return quota usage (best effort; may be a placeholder)."""
        raise NotImplementedError

    @abstractmethod
    def healthy(self) -> bool:
        """Probe the provider with a cheap request."""
        raise NotImplementedError

    def with_provider_response(self, fn: Callable[[], T]) -> ProviderResponse[T]:
        """
        Run an adapter operation and wrap its outcome in a ProviderResponse.

        Args:
            fn: Zero-argument callable performing the provider work

        Returns:
            ProviderResponse with data on success, or the caught error
        """
        try:
            return ProviderResponse.ok(fn())
        except ADAPTER_ERRORS as e:
            log.warning("%s request failed: %s", self.name, e)
            return ProviderResponse.failed(e)

    def report(self, error: Exception) -> None:
        """Log skipped malformed data and forward it to the error reporter."""
        log.warning("%s: %s", self.name, error)
        if self.error_reporter is not None:
            self.error_reporter(self.name, error)

    def require_configured(self) -> None:
        if not self.is_configured():
            raise ProviderNotConfiguredError(f"{self.name} is not configured")

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a JSON document from the provider.

        Args:
            url: Absolute endpoint URL
            params: Optional query string parameters

        Returns:
            Decoded JSON body

        Raises:
            ProviderError: On timeout, HTTP error, connection failure or invalid JSON
        """
        try:
            resp = requests.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.exceptions.Timeout as e:
            log.warning("%s API timeout after %d seconds", self.name, self.timeout)
            raise ProviderError(f"{self.name} API timeout after {self.timeout}s") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            log.warning("%s API HTTP error %s", self.name, status)
            raise ProviderError(f"{self.name} API HTTP error {status}") from e
        except requests.exceptions.RequestException as e:
            log.warning("%s API request failed: %s", self.name, e)
            raise ProviderError(f"{self.name} API request failed: {e}") from e
        except ValueError as e:
            log.error("%s API returned invalid JSON: %s", self.name, e)
            raise ProviderError(f"{self.name} API returned invalid JSON: {e}") from e


class ExchangeRateProvider(MarketDataProvider):
    """Provider of currency exchange rates."""

    @abstractmethod
    def fetch_one(self, pair: RatePair, on: date) -> ProviderResponse[Rate]:
        """Fetch the rate for one pair on one date."""
        raise NotImplementedError

    @abstractmethod
    def fetch_range(self, pair: RatePair, start: date, end: date) -> ProviderResponse[List[Rate]]:
        """Fetch rates for one pair over an inclusive date range."""
        raise NotImplementedError


class SecurityPriceProvider(MarketDataProvider):
    """Provider of security prices."""

    @abstractmethod
    def fetch_one(self, security: Security, on: date) -> ProviderResponse[Price]:
        """Fetch the price of one security on one date."""
        raise NotImplementedError

    @abstractmethod
    def fetch_range(self, security: Security, start: date, end: date) -> ProviderResponse[List[Price]]:
        """Fetch prices of one security over an inclusive date range."""
        raise NotImplementedError
