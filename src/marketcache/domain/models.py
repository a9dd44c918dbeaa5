# src/marketcache/domain/models.py
"""
Domain Models - Pure Business Objects

This module contains domain models representing core business concepts:
- Exchange rates between two currencies on a date
- Security prices on a date
- Provider usage reports
- Provider call results

Files that USE this module:
- marketcache.application.* (all services use domain models)
- marketcache.adapters.* (adapters create and use domain models)
- tests.* (tests use domain models for test data)

Files that this module USES:
- None (pure domain layer, no external dependencies)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from dataclasses import dataclass  # Decorator for creating data classes
from datetime import date  # Calendar dates for rate/price identity
from decimal import Decimal  # Exact decimal values for rates and prices
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar  # Type hints

T = TypeVar("T")


def _to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric-like value to Decimal without float noise.

    Args:
        value: int, float, str or Decimal

    Returns:
        Decimal representation of the value
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _to_date(value: Any) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class RatePair:
    """Currency pair identifying an exchange rate series (without the date)."""
    from_currency: str
    to_currency: str

    @property
    def is_identity(self) -> bool:
        """True when converting a currency into itself."""
        return self.from_currency == self.to_currency


@dataclass(frozen=True)
class Security:
    """Security identifying a price series (without the date)."""
    symbol: str
    exchange_operating_mic: Optional[str] = None


@dataclass(frozen=True)
class Rate:
    """
    Exchange rate: how many units of `to_currency` one unit of `from_currency` buys.

    Attributes:
        date: Day the rate applies to
        from_currency: ISO currency code converted from
        to_currency: ISO currency code converted to
        rate: Conversion factor
    """
    date: date
    from_currency: str
    to_currency: str
    rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", _to_date(self.date))
        object.__setattr__(self, "rate", _to_decimal(self.rate))

    @property
    def pair(self) -> RatePair:
        return RatePair(self.from_currency, self.to_currency)

    @property
    def identity(self) -> Tuple[str, str, date]:
        return (self.from_currency, self.to_currency, self.date)

    def to_json(self) -> Dict[str, str]:
        """
        Convert Rate to JSON-serializable dictionary.

        Returns:
            Dictionary with ISO-formatted date and string rate
        """
        return {
            "date": self.date.isoformat(),
            "from_currency": self.from_currency,
            "to_currency": self.to_currency,
            "rate": str(self.rate),
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "Rate":
        return Rate(
            date=_to_date(data["date"]),
            from_currency=str(data["from_currency"]),
            to_currency=str(data["to_currency"]),
            rate=_to_decimal(data["rate"]),
        )


@dataclass(frozen=True)
class Price:
    """
    Closing (or quoted) price of a security on a date.

    Attributes:
        symbol: Ticker symbol
        date: Day the price applies to
        price: Price value
        currency: ISO currency code the price is expressed in
        exchange_operating_mic: Exchange MIC, None when unknown
    """
    symbol: str
    date: date
    price: Decimal
    currency: str
    exchange_operating_mic: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", _to_date(self.date))
        object.__setattr__(self, "price", _to_decimal(self.price))

    @property
    def security(self) -> Security:
        return Security(self.symbol, self.exchange_operating_mic)

    @property
    def identity(self) -> Tuple[str, Optional[str], date]:
        return (self.symbol, self.exchange_operating_mic, self.date)

    def to_json(self) -> Dict[str, Optional[str]]:
        """
        Convert Price to JSON-serializable dictionary.

        Returns:
            Dictionary with ISO-formatted date and string price
        """
        return {
            "symbol": self.symbol,
            "exchange_operating_mic": self.exchange_operating_mic,
            "date": self.date.isoformat(),
            "price": str(self.price),
            "currency": self.currency,
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "Price":
        return Price(
            symbol=str(data["symbol"]),
            exchange_operating_mic=data.get("exchange_operating_mic") or None,
            date=_to_date(data["date"]),
            price=_to_decimal(data["price"]),
            currency=str(data["currency"]),
        )


@dataclass(frozen=True)
class UsageData:
    """
    Provider quota usage as reported by (or assumed for) a provider.

    Attributes:
        used: Requests used in the current period
        limit: Requests allowed in the current period
        utilization: Percentage of the limit used
        plan: Plan name
    """
    used: int
    limit: int
    utilization: float
    plan: str


@dataclass(frozen=True)
class ProviderResponse(Generic[T]):
    """
    Result of a provider adapter call.

    Exactly one of `data` / `error` is meaningful: a successful response
    carries data (which may be an empty list for range fetches), a failed
    one carries the exception that caused the failure.
    """
    data: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, data: T) -> "ProviderResponse[T]":
        return cls(data=data)

    @classmethod
    def failed(cls, error: Exception) -> "ProviderResponse[T]":
        return cls(error=error)
