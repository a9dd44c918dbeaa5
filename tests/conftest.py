# tests/conftest.py
"""
Shared Test Fixtures - Services Wired with In-Memory Tiers

Files that USE this module:
- pytest (fixtures for all test modules)

Files that this module USES:
- marketcache.adapters.cache (MemoryCacheStore)
- marketcache.adapters.persistence (in-memory record stores)
- marketcache.application (services, ProviderChain, CacheStats)
- unittest.mock (provider mocks)
"""
from datetime import date
from unittest.mock import Mock

import pytest

from marketcache.adapters.cache import MemoryCacheStore
from marketcache.adapters.persistence import price_record_store, rate_record_store
from marketcache.adapters.providers.base import ExchangeRateProvider, SecurityPriceProvider
from marketcache.application.prices_service import SecurityPriceService
from marketcache.application.provider_chain import ProviderChain
from marketcache.application.rates_service import ExchangeRateService
from marketcache.application.stats import CacheStats
from marketcache.domain.models import ProviderResponse

TODAY = date(2024, 6, 15)


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_provider(provider_class, name, configured=True):
    provider = Mock(spec=provider_class)
    provider.name = name
    provider.is_configured.return_value = configured
    provider.fetch_one.return_value = ProviderResponse.ok(None)
    provider.fetch_range.return_value = ProviderResponse.ok([])
    return provider


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCacheStore(max_entries=1000, clock=clock)


@pytest.fixture
def stats():
    return CacheStats()


@pytest.fixture
def rate_provider():
    return make_provider(ExchangeRateProvider, "exchangerate_api")


@pytest.fixture
def price_provider():
    return make_provider(SecurityPriceProvider, "financial_modeling_prep")


@pytest.fixture
def rate_store():
    return rate_record_store(None)


@pytest.fixture
def price_store():
    return price_record_store(None)


@pytest.fixture
def rates(cache, rate_store, rate_provider, stats):
    return ExchangeRateService(
        cache,
        rate_store,
        ProviderChain("exchange_rates", [rate_provider]),
        stats=stats,
        today=lambda: TODAY,
    )


@pytest.fixture
def prices(cache, price_store, price_provider, stats):
    return SecurityPriceService(
        cache,
        price_store,
        ProviderChain("security_prices", [price_provider]),
        stats=stats,
        today=lambda: TODAY,
    )
