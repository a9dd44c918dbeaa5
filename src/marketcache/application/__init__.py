# src/marketcache/application/__init__.py
"""
Application Layer - Use Cases and Business Logic

This package contains the tiered lookup engine and its rate and price
bindings, the cache lifetime policy, provider fallback and operations.
"""

from marketcache.application.lookup import MarketDataService
from marketcache.application.prices_service import SecurityPriceService
from marketcache.application.provider_chain import ProviderChain
from marketcache.application.rates_service import ExchangeRateService
from marketcache.application.stats import CacheStats

__all__ = [
    "MarketDataService",
    "ExchangeRateService",
    "SecurityPriceService",
    "ProviderChain",
    "CacheStats",
]
