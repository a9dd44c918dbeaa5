# src/marketcache/domain/errors.py
"""
Domain Errors - Business Logic Exceptions

This module defines domain-specific exceptions. Provider errors are raised
inside provider adapters and carried back to the services wrapped in a
ProviderResponse; they never reach callers of the lookup services.
"""


class DomainError(Exception):
    """Base exception for domain errors."""
    pass


class ProviderError(DomainError):
    """Raised when a provider call fails (HTTP error, timeout, bad payload)."""
    pass


class InvalidExchangeRateError(ProviderError):
    """Raised when a provider returns a malformed or missing exchange rate."""
    pass


class InvalidSecurityPriceError(ProviderError):
    """Raised when a provider returns a malformed or missing security price."""
    pass


class ProviderNotConfiguredError(ProviderError):
    """Raised when a provider is used without the credentials it needs."""
    pass


class StoreError(DomainError):
    """Raised when the durable record store cannot be read or written."""
    pass
