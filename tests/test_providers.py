# tests/test_providers.py
"""
Provider Tests - Unit Tests for Market Data Provider Adapters

This module contains unit tests for the provider adapters:
ExchangeRateApiProvider, FrankfurterProvider and FinancialModelingPrepProvider.
It tests request building, response parsing, skipped malformed records and
the mapping of transport errors to failed ProviderResponses.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- marketcache.adapters.providers (provider adapters under test)
- marketcache.domain (models and errors)
- unittest.mock (Mock for API mocking)
- pytest (testing framework)
"""
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import Mock, patch

import pytest
import requests

from marketcache.adapters.providers.exchangerate_api import ExchangeRateApiProvider
from marketcache.adapters.providers.financial_modeling_prep import FinancialModelingPrepProvider
from marketcache.adapters.providers.frankfurter import FrankfurterProvider
from marketcache.domain.errors import (
    InvalidExchangeRateError,
    InvalidSecurityPriceError,
    ProviderError,
    ProviderNotConfiguredError,
)
from marketcache.domain.models import Price, Rate, RatePair, Security

TODAY = date(2024, 6, 15)
USD_EUR = RatePair("USD", "EUR")
AAPL = Security("AAPL", "XNAS")
API_KEY = "test-key-1234567890"

GET = "marketcache.adapters.providers.base.requests.get"


def json_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def success(rate="0.92"):
    return {"result": "success", "conversion_rates": {"EUR": rate, "GBP": "0.79"}}


class TestExchangeRateApiProvider:
    def make(self, api_key=API_KEY, allow_free=False, reporter=None):
        return ExchangeRateApiProvider(
            api_key=api_key,
            allow_free=allow_free,
            free_url="https://open.er-api.com/v6",
            timeout=5,
            today=lambda: TODAY,
            error_reporter=reporter,
        )

    def test_configured_with_key_or_free_access(self):
        assert self.make().is_configured()
        assert self.make(api_key="", allow_free=True).is_configured()
        assert not self.make(api_key="").is_configured()

    def test_historical_range_needs_key(self):
        assert self.make().supports_historical_range
        assert not self.make(api_key="", allow_free=True).supports_historical_range

    @patch(GET)
    def test_healthy_with_rates_table(self, mock_get):
        mock_get.return_value = json_response(success())
        assert self.make().healthy()

    @patch(GET)
    def test_non_dict_body_is_unhealthy(self, mock_get):
        mock_get.return_value = json_response([{"EUR": 0.92}])
        assert not self.make().healthy()

    @patch(GET)
    def test_fetch_one_today_uses_latest(self, mock_get):
        mock_get.return_value = json_response(success())

        response = self.make().fetch_one(USD_EUR, TODAY)

        assert response.success
        assert response.data == Rate(TODAY, "USD", "EUR", Decimal("0.92"))
        url = mock_get.call_args[0][0]
        assert url == f"https://v6.exchangerate-api.com/v6/{API_KEY}/latest/USD"
        assert mock_get.call_args[1]["timeout"] == 5

    @patch(GET)
    def test_fetch_one_past_uses_history(self, mock_get):
        mock_get.return_value = json_response(success("0.9"))

        response = self.make().fetch_one(USD_EUR, date(2024, 1, 31))

        assert response.data.rate == Decimal("0.9")
        assert mock_get.call_args[0][0].endswith("/history/USD/2024/1/31")

    @patch(GET)
    def test_fetch_one_past_without_key_fails(self, mock_get):
        response = self.make(api_key="", allow_free=True).fetch_one(USD_EUR, date(2024, 1, 31))

        assert not response.success
        assert isinstance(response.error, ProviderError)
        mock_get.assert_not_called()

    def test_not_configured(self):
        response = self.make(api_key="").fetch_one(USD_EUR, TODAY)

        assert isinstance(response.error, ProviderNotConfiguredError)

    @patch(GET)
    def test_api_error_result(self, mock_get):
        mock_get.return_value = json_response({"result": "error", "error-type": "invalid-key"})

        response = self.make().fetch_one(USD_EUR, TODAY)

        assert isinstance(response.error, InvalidExchangeRateError)
        assert "invalid-key" in str(response.error)

    @patch(GET)
    def test_missing_currency(self, mock_get):
        mock_get.return_value = json_response({"result": "success", "conversion_rates": {"GBP": 0.79}})

        response = self.make().fetch_one(USD_EUR, TODAY)

        assert isinstance(response.error, InvalidExchangeRateError)

    @patch(GET)
    def test_http_error(self, mock_get):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=Mock(status_code=503))
        mock_get.return_value = response

        result = self.make().fetch_one(USD_EUR, TODAY)

        assert isinstance(result.error, ProviderError)
        assert "503" in str(result.error)

    @patch(GET)
    def test_timeout(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout()

        result = self.make().fetch_one(USD_EUR, TODAY)

        assert isinstance(result.error, ProviderError)
        assert "timeout" in str(result.error)

    @patch(GET)
    def test_fetch_range_with_key_skips_bad_days(self, mock_get):
        reporter = Mock()
        mock_get.side_effect = [
            json_response(success("0.91")),
            json_response({"result": "success", "conversion_rates": {}}),
            json_response(success("0.93")),
        ]
        start = TODAY - timedelta(days=4)

        response = self.make(reporter=reporter).fetch_range(USD_EUR, start, start + timedelta(days=2))

        assert [r.date for r in response.data] == [start, start + timedelta(days=2)]
        reporter.assert_called_once()
        assert reporter.call_args[0][0] == "exchangerate_api"

    @patch(GET)
    def test_free_range_approximates_recent_days_with_latest(self, mock_get):
        mock_get.return_value = json_response({"result": "success", "rates": {"EUR": 0.92}})
        provider = self.make(api_key="", allow_free=True)

        response = provider.fetch_range(USD_EUR, TODAY - timedelta(days=2), TODAY)

        assert [r.date for r in response.data] == [TODAY - timedelta(days=2), TODAY - timedelta(days=1), TODAY]
        assert {r.rate for r in response.data} == {Decimal("0.92")}
        mock_get.assert_called_once()
        assert mock_get.call_args[0][0] == "https://open.er-api.com/v6/latest/USD"

    @patch(GET)
    def test_free_range_older_than_a_week_is_empty(self, mock_get):
        provider = self.make(api_key="", allow_free=True)

        response = provider.fetch_range(USD_EUR, TODAY - timedelta(days=10), TODAY)

        assert response.success
        assert response.data == []
        mock_get.assert_not_called()

    def test_usage_placeholder(self):
        usage = self.make().usage().data
        assert usage.limit == 1500
        assert usage.used == 0


class TestFrankfurterProvider:
    def make(self, enabled=True, reporter=None):
        return FrankfurterProvider(
            base_url="https://api.frankfurter.app/", enabled=enabled, today=lambda: TODAY, error_reporter=reporter
        )

    @patch(GET)
    def test_fetch_one_past_date(self, mock_get):
        mock_get.return_value = json_response({"base": "USD", "date": "2024-01-31", "rates": {"EUR": 0.9241}})

        response = self.make().fetch_one(USD_EUR, date(2024, 1, 31))

        assert response.data == Rate(date(2024, 1, 31), "USD", "EUR", Decimal("0.9241"))
        assert mock_get.call_args[0][0] == "https://api.frankfurter.app/2024-01-31"
        assert mock_get.call_args[1]["params"] == {"from": "USD", "to": "EUR"}

    @patch(GET)
    def test_fetch_one_today_uses_latest(self, mock_get):
        mock_get.return_value = json_response({"rates": {"EUR": 0.93}})

        self.make().fetch_one(USD_EUR, TODAY)

        assert mock_get.call_args[0][0] == "https://api.frankfurter.app/latest"

    @patch(GET)
    def test_fetch_range(self, mock_get):
        reporter = Mock()
        mock_get.return_value = json_response({
            "rates": {
                "2024-01-02": {"EUR": 0.91},
                "2024-01-03": {},
                "2024-01-04": {"EUR": 0.92},
            }
        })

        response = self.make(reporter=reporter).fetch_range(USD_EUR, date(2024, 1, 2), date(2024, 1, 4))

        assert [r.date for r in response.data] == [date(2024, 1, 2), date(2024, 1, 4)]
        assert mock_get.call_args[0][0] == "https://api.frankfurter.app/2024-01-02..2024-01-04"
        reporter.assert_called_once()

    @patch(GET)
    def test_healthy(self, mock_get):
        mock_get.return_value = json_response({"rates": {"EUR": 0.93}})
        assert self.make().healthy()

    @patch(GET)
    def test_unhealthy_on_transport_error(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("down")
        assert not self.make().healthy()

    def test_disabled(self):
        provider = self.make(enabled=False)
        assert not provider.is_configured()
        assert isinstance(provider.fetch_one(USD_EUR, TODAY).error, ProviderNotConfiguredError)


class TestFinancialModelingPrepProvider:
    def make(self, api_key=API_KEY, reporter=None):
        return FinancialModelingPrepProvider(
            api_key=api_key,
            base_url="https://financialmodelingprep.com/api",
            today=lambda: TODAY,
            error_reporter=reporter,
        )

    @patch(GET)
    def test_fetch_one_today_uses_quote(self, mock_get):
        mock_get.return_value = json_response([{"symbol": "AAPL", "price": 190.12}])

        response = self.make().fetch_one(AAPL, TODAY)

        assert response.data == Price("AAPL", TODAY, Decimal("190.12"), "USD", "XNAS")
        assert mock_get.call_args[0][0] == "https://financialmodelingprep.com/api/v3/quote/AAPL"
        assert mock_get.call_args[1]["params"] == {"apikey": API_KEY}

    @patch(GET)
    def test_future_date_gets_todays_quote(self, mock_get):
        mock_get.return_value = json_response([{"symbol": "AAPL", "price": 190.12}])

        response = self.make().fetch_one(AAPL, TODAY + timedelta(days=3))

        assert response.data.date == TODAY

    @patch(GET)
    def test_empty_quote(self, mock_get):
        mock_get.return_value = json_response([])

        assert isinstance(self.make().fetch_one(AAPL, TODAY).error, InvalidSecurityPriceError)

    @patch(GET)
    def test_fetch_one_past_uses_historical(self, mock_get):
        mock_get.return_value = json_response({"historical": [{"date": "2024-01-31", "close": 184.4}]})

        response = self.make().fetch_one(AAPL, date(2024, 1, 31))

        assert response.data.price == Decimal("184.4")
        assert mock_get.call_args[1]["params"]["from"] == "2024-01-31"
        assert mock_get.call_args[1]["params"]["to"] == "2024-01-31"

    @patch(GET)
    def test_fetch_range_skips_invalid_rows(self, mock_get):
        reporter = Mock()
        mock_get.return_value = json_response({
            "symbol": "AAPL",
            "historical": [
                {"date": "2024-01-03", "close": 184.25, "open": 184.2},
                {"date": "2024-01-02", "open": 187.15},
                {"date": "2024-01-01"},
                "garbage",
            ],
        })

        response = self.make(reporter=reporter).fetch_range(AAPL, date(2024, 1, 1), date(2024, 1, 3))

        assert [(p.date, p.price) for p in response.data] == [
            (date(2024, 1, 3), Decimal("184.25")),
            (date(2024, 1, 2), Decimal("187.15")),
        ]
        reporter.assert_called_once()

    @patch(GET)
    def test_no_history(self, mock_get):
        mock_get.return_value = json_response({})

        response = self.make().fetch_range(AAPL, date(2024, 1, 1), date(2024, 1, 3))

        assert response.success
        assert response.data == []

    def test_unconfigured_is_unhealthy(self):
        assert not self.make(api_key="").healthy()

    def test_requires_key(self):
        provider = self.make(api_key="")
        assert not provider.is_configured()
        assert isinstance(provider.fetch_range(AAPL, TODAY, TODAY).error, ProviderNotConfiguredError)

    def test_usage_placeholder(self):
        assert self.make().usage().data.limit == 250


class TestUnexpectedErrors:
    def test_exception_type_outside_adapter_errors_propagates(self):
        provider = FrankfurterProvider(enabled=True, today=lambda: TODAY)
        with patch(GET, side_effect=RuntimeError("bug")):
            with pytest.raises(RuntimeError):
                provider.fetch_one(USD_EUR, TODAY)
