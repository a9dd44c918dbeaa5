# src/marketcache/adapters/providers/__init__.py
"""
Provider Adapters - External API Clients

This package contains adapters for external market data APIs.
Rate providers implement ExchangeRateProvider, price providers implement
SecurityPriceProvider.
"""

from marketcache.adapters.providers.base import (
    ExchangeRateProvider,
    MarketDataProvider,
    SecurityPriceProvider,
)
from marketcache.adapters.providers.exchangerate_api import ExchangeRateApiProvider
from marketcache.adapters.providers.financial_modeling_prep import FinancialModelingPrepProvider
from marketcache.adapters.providers.frankfurter import FrankfurterProvider

__all__ = [
    "MarketDataProvider",
    "ExchangeRateProvider",
    "SecurityPriceProvider",
    "ExchangeRateApiProvider",
    "FrankfurterProvider",
    "FinancialModelingPrepProvider",
]
