# src/marketcache/domain/__init__.py
"""
Domain Layer - Pure Business Objects

This package contains domain models and business rules.
No dependencies on infrastructure or external systems.
"""

from marketcache.domain.models import (
    Price,
    ProviderResponse,
    Rate,
    RatePair,
    Security,
    UsageData,
)
from marketcache.domain.errors import (
    DomainError,
    InvalidExchangeRateError,
    InvalidSecurityPriceError,
    ProviderError,
    ProviderNotConfiguredError,
    StoreError,
)

__all__ = [
    "Rate",
    "RatePair",
    "Price",
    "Security",
    "UsageData",
    "ProviderResponse",
    "DomainError",
    "ProviderError",
    "InvalidExchangeRateError",
    "InvalidSecurityPriceError",
    "ProviderNotConfiguredError",
    "StoreError",
]
