# tests/test_rates_service.py
"""
Rates Service Tests - Unit Tests for the Exchange Rate Lookup

This module contains unit tests for ExchangeRateService: the identity rate,
cache hits, store promotion, provider fetches, provider failures and the
batch lookup.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- marketcache.application.rates_service (ExchangeRateService)
- marketcache.domain.models (Rate, RatePair, ProviderResponse)
- tests.conftest (services wired with in-memory tiers)
- pytest (testing framework)
"""
import itertools
import threading
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest

from marketcache.application.fingerprint import rate_key
from marketcache.application.provider_chain import ProviderChain
from marketcache.application.rates_service import ExchangeRateService
from marketcache.application.stats import (
    CACHE_HIT,
    NOT_FOUND,
    PROVIDER_FAILURE,
    PROVIDER_FETCH,
    RECORD_WRITE,
    STORE_HIT,
)
from marketcache.domain.errors import ProviderError, StoreError
from marketcache.domain.models import ProviderResponse, Rate, RatePair
from marketcache.adapters.providers.base import ExchangeRateProvider

from tests.conftest import TODAY, make_provider

USD_EUR = RatePair("USD", "EUR")
DAY = date(2024, 1, 31)


def usd_eur(on, value="0.92"):
    return Rate(on, "USD", "EUR", value)


class TestIdentityRate:
    def test_same_currency_returns_one_without_touching_tiers(self, rates, rate_provider, cache, rate_store):
        rate = rates.find_or_fetch_rate("USD", "USD", DAY)

        assert rate == Rate(DAY, "USD", "USD", Decimal("1"))
        rate_provider.fetch_one.assert_not_called()
        assert cache.count() == 0
        assert rate_store.count() == 0

    def test_same_currency_batch_returns_one_per_date(self, rates, rate_provider):
        result = rates.find_or_fetch_rates("EUR", "EUR", [DAY, DAY - timedelta(days=1)])

        assert [r.date for r in result] == [DAY - timedelta(days=1), DAY]
        assert all(r.rate == Decimal("1") for r in result)
        rate_provider.fetch_range.assert_not_called()


class TestCacheTier:
    def test_cache_hit_short_circuits(self, rates, cache, rate_provider, stats):
        cache.write(rate_key(USD_EUR, DAY), {"rate": "0.91"}, timedelta(hours=24))

        rate = rates.find_or_fetch_rate("USD", "EUR", DAY)

        assert rate == usd_eur(DAY, "0.91")
        rate_provider.fetch_one.assert_not_called()
        assert stats.get_count("exchange_rates", CACHE_HIT) == 1

    def test_cache_hit_skips_durable_store(self, cache, rate_provider):
        store = Mock()
        cache.write(rate_key(USD_EUR, DAY), {"rate": "0.91"}, timedelta(hours=24))
        service = ExchangeRateService(
            cache, store, ProviderChain("exchange_rates", [rate_provider]), today=lambda: TODAY
        )

        assert service.find_or_fetch_rate("USD", "EUR", DAY).rate == Decimal("0.91")
        store.find_by.assert_not_called()

    def test_unreadable_cache_entry_is_dropped(self, rates, cache, rate_provider):
        cache.write(rate_key(USD_EUR, DAY), {"wrong": "shape"}, timedelta(hours=24))
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))

        rate = rates.find_or_fetch_rate("USD", "EUR", DAY)

        assert rate == usd_eur(DAY)
        assert cache.read(rate_key(USD_EUR, DAY)) == {"rate": "0.92"}

    def test_use_cache_false_skips_cache(self, rates, cache, rate_store, rate_provider):
        cache.write(rate_key(USD_EUR, DAY), {"rate": "0.50"}, timedelta(hours=24))
        rate_store.find_or_create(("USD", "EUR", DAY), usd_eur(DAY))

        rate = rates.find_or_fetch_rate("USD", "EUR", DAY, use_cache=False)

        assert rate.rate == Decimal("0.92")
        rate_provider.fetch_one.assert_not_called()


class TestStoreTier:
    def test_store_hit_is_promoted_to_cache(self, rates, cache, rate_store, rate_provider, stats):
        rate_store.find_or_create(("USD", "EUR", DAY), usd_eur(DAY))

        rate = rates.find_or_fetch_rate("USD", "EUR", DAY)

        assert rate == usd_eur(DAY)
        rate_provider.fetch_one.assert_not_called()
        assert cache.read(rate_key(USD_EUR, DAY)) == {"rate": "0.92"}
        assert cache.ttl_remaining(rate_key(USD_EUR, DAY)) == pytest.approx(24 * 3600)
        assert stats.get_count("exchange_rates", STORE_HIT) == 1


class TestProviderTier:
    def test_provider_fetch_persists_and_caches(self, rates, cache, rate_store, rate_provider, stats):
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))

        rate = rates.find_or_fetch_rate("USD", "EUR", DAY)

        assert rate == usd_eur(DAY)
        rate_provider.fetch_one.assert_called_once_with(USD_EUR, DAY)
        assert rate_store.find_by(("USD", "EUR", DAY)) == usd_eur(DAY)
        assert cache.read(rate_key(USD_EUR, DAY)) == {"rate": "0.92"}
        assert stats.get_count("exchange_rates", PROVIDER_FETCH) == 1
        assert stats.get_count("exchange_rates", RECORD_WRITE) == 1

    def test_second_lookup_does_not_call_provider_again(self, rates, rate_provider):
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))

        first = rates.find_or_fetch_rate("USD", "EUR", DAY)
        second = rates.find_or_fetch_rate("USD", "EUR", DAY)

        assert first == second
        rate_provider.fetch_one.assert_called_once()

    def test_cache_expiry_falls_back_to_store(self, rates, rate_provider, clock):
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))
        rates.find_or_fetch_rate("USD", "EUR", DAY)

        clock.advance(25 * 3600)
        rate = rates.find_or_fetch_rate("USD", "EUR", DAY)

        assert rate == usd_eur(DAY)
        rate_provider.fetch_one.assert_called_once()

    def test_default_date_is_today(self, rates, rate_provider):
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(TODAY))

        rate = rates.find_or_fetch_rate("USD", "EUR")

        assert rate.date == TODAY
        rate_provider.fetch_one.assert_called_once_with(USD_EUR, TODAY)

    def test_no_configured_provider_returns_none(self, cache, rate_store, stats):
        provider = make_provider(ExchangeRateProvider, "exchangerate_api", configured=False)
        service = ExchangeRateService(
            cache, rate_store, ProviderChain("exchange_rates", [provider]), stats=stats, today=lambda: TODAY
        )

        assert service.find_or_fetch_rate("USD", "EUR", DAY) is None
        provider.fetch_one.assert_not_called()
        assert stats.get_count("exchange_rates", NOT_FOUND) == 1

    def test_first_configured_provider_is_used(self, cache, rate_store):
        unconfigured = make_provider(ExchangeRateProvider, "exchangerate_api", configured=False)
        fallback = make_provider(ExchangeRateProvider, "frankfurter")
        fallback.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))
        service = ExchangeRateService(
            cache, rate_store, ProviderChain("exchange_rates", [unconfigured, fallback]), today=lambda: TODAY
        )

        assert service.find_or_fetch_rate("USD", "EUR", DAY) == usd_eur(DAY)
        unconfigured.fetch_one.assert_not_called()

    def test_provider_failure_returns_none_and_writes_nothing(self, rates, rate_provider, cache, rate_store, stats):
        rate_provider.fetch_one.return_value = ProviderResponse.failed(ProviderError("HTTP 500"))

        assert rates.find_or_fetch_rate("USD", "EUR", DAY) is None
        assert cache.count() == 0
        assert rate_store.count() == 0
        assert stats.get_count("exchange_rates", PROVIDER_FAILURE) == 1
        assert stats.get_summary()["provider_errors"]["exchangerate_api"]["last_error"] == "HTTP 500"

    def test_provider_exception_is_contained(self, rates, rate_provider):
        rate_provider.fetch_one.side_effect = RuntimeError("boom")

        assert rates.find_or_fetch_rate("USD", "EUR", DAY) is None

    def test_provider_returning_other_pair_is_rejected(self, rates, rate_provider, rate_store):
        rate_provider.fetch_one.return_value = ProviderResponse.ok(Rate(DAY, "USD", "GBP", "0.79"))

        assert rates.find_or_fetch_rate("USD", "EUR", DAY) is None
        assert rate_store.count() == 0

    def test_existing_record_wins_over_fetched_value(self, cache, rate_provider, stats):
        store = Mock()
        store.find_by.return_value = None
        store.find_or_create.return_value = usd_eur(DAY, "0.90")
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY, "0.92"))
        service = ExchangeRateService(
            cache, store, ProviderChain("exchange_rates", [rate_provider]), stats=stats, today=lambda: TODAY
        )

        rate = service.find_or_fetch_rate("USD", "EUR", DAY)

        assert rate.rate == Decimal("0.90")
        assert cache.read(rate_key(USD_EUR, DAY)) == {"rate": "0.90"}

    def test_store_failure_returns_fetched_value_without_caching(self, cache, rate_provider):
        store = Mock()
        store.find_by.return_value = None
        store.find_or_create.side_effect = StoreError("disk full")
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))
        service = ExchangeRateService(
            cache, store, ProviderChain("exchange_rates", [rate_provider]), today=lambda: TODAY
        )

        assert service.find_or_fetch_rate("USD", "EUR", DAY) == usd_eur(DAY)
        assert cache.count() == 0

    def test_store_failure_in_batch_returns_fetched_values(self, cache, rate_provider):
        store = Mock()
        store.find_by.return_value = None
        store.find_or_create.side_effect = StoreError("disk full")
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))
        rate_provider.fetch_range.return_value = ProviderResponse.ok([usd_eur(DAY)])
        service = ExchangeRateService(
            cache, store, ProviderChain("exchange_rates", [rate_provider]), today=lambda: TODAY
        )

        single = service.find_or_fetch_rate("USD", "EUR", DAY)
        batch = service.find_or_fetch_rates("USD", "EUR", [DAY])

        assert batch == [single]
        assert cache.count() == 0

    def test_concurrent_misses_yield_one_record(self, rates, rate_provider, rate_store):
        quotes = itertools.count(90)

        def fetch_one(pair, on):
            return ProviderResponse.ok(usd_eur(on, f"0.{next(quotes)}"))

        rate_provider.fetch_one.side_effect = fetch_one
        barrier = threading.Barrier(8)
        results = []

        def lookup():
            barrier.wait()
            results.append(rates.resolve(USD_EUR, DAY))

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert rate_store.count() == 1
        assert len(results) == 8
        assert all(rate == results[0] for rate in results)
        assert rate_store.find_by(("USD", "EUR", DAY)) == results[0]


class TestBatchRates:
    def test_only_missing_dates_are_fetched_in_one_range_call(self, rates, rate_store, rate_provider):
        d10, d5, d0 = TODAY - timedelta(days=10), TODAY - timedelta(days=5), TODAY
        rate_store.find_or_create(("USD", "EUR", d5), usd_eur(d5, "0.93"))
        rate_provider.fetch_range.return_value = ProviderResponse.ok(
            [usd_eur(d10, "0.91"), usd_eur(TODAY - timedelta(days=3), "0.94"), usd_eur(d0, "0.95")]
        )

        result = rates.find_or_fetch_rates("USD", "EUR", [d0, d10, d5])

        rate_provider.fetch_range.assert_called_once_with(USD_EUR, d10, d0)
        assert [(r.date, r.rate) for r in result] == [
            (d10, Decimal("0.91")),
            (d5, Decimal("0.93")),
            (d0, Decimal("0.95")),
        ]
        # Unrequested dates inside the span are kept for later lookups
        assert rate_store.find_by(("USD", "EUR", TODAY - timedelta(days=3))) is not None

    def test_fully_cached_batch_makes_no_provider_call(self, rates, rate_store, rate_provider):
        dates = [TODAY - timedelta(days=2), TODAY - timedelta(days=1)]
        for on in dates:
            rate_store.find_or_create(("USD", "EUR", on), usd_eur(on))

        result = rates.find_or_fetch_rates("USD", "EUR", dates)

        assert len(result) == 2
        rate_provider.fetch_range.assert_not_called()

    def test_dates_the_provider_lacks_are_omitted(self, rates, rate_provider, stats):
        rate_provider.fetch_range.return_value = ProviderResponse.ok([usd_eur(DAY)])

        result = rates.find_or_fetch_rates("USD", "EUR", [DAY - timedelta(days=1), DAY])

        assert result == [usd_eur(DAY)]
        assert stats.get_count("exchange_rates", NOT_FOUND) == 1

    def test_range_failure_returns_cached_subset(self, rates, rate_store, rate_provider):
        rate_store.find_or_create(("USD", "EUR", DAY), usd_eur(DAY))
        rate_provider.fetch_range.return_value = ProviderResponse.failed(ProviderError("timeout"))

        result = rates.find_or_fetch_rates("USD", "EUR", [DAY - timedelta(days=1), DAY])

        assert result == [usd_eur(DAY)]

    def test_empty_dates(self, rates, rate_provider):
        assert rates.find_or_fetch_rates("USD", "EUR", []) == []
        rate_provider.fetch_range.assert_not_called()


class TestInvalidation:
    def test_invalidate_keeps_durable_record(self, rates, rate_provider, cache, rate_store):
        rate_provider.fetch_one.return_value = ProviderResponse.ok(usd_eur(DAY))
        rates.find_or_fetch_rate("USD", "EUR", DAY)

        rates.invalidate(USD_EUR, DAY)

        assert cache.read(rate_key(USD_EUR, DAY)) is None
        assert rate_store.count() == 1

    def test_invalidate_instrument_only_touches_that_pair(self, rates, cache):
        cache.write(rate_key(USD_EUR, DAY), {"rate": "0.92"}, timedelta(hours=1))
        cache.write(rate_key(USD_EUR, TODAY), {"rate": "0.93"}, timedelta(hours=1))
        cache.write(rate_key(RatePair("USD", "GBP"), DAY), {"rate": "0.79"}, timedelta(hours=1))

        assert rates.invalidate_instrument(USD_EUR) == 2
        assert rates.cached_count() == 1
