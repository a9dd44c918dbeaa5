# src/marketcache/application/fingerprint.py
"""
Fingerprints - Cache Keys for Market Data

Builds deterministic cache keys from a request identity. Every date of one
instrument shares the instrument prefix, and every instrument of one concept
shares the concept prefix, so both can be cleared with prefix deletion:

    exchange_rate/USD/EUR/2024-01-31
    security_price/AAPL/XNAS/2024-01-31
    security_price/AAPL//2024-01-31      (unknown exchange)

Files that USE this module:
- marketcache.application.rates_service (rate keys and prefixes)
- marketcache.application.prices_service (price keys and prefixes)

Files that this module USES:
- marketcache.domain.models (RatePair, Security)
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from marketcache.domain.models import RatePair, Security

RATE_PREFIX = "exchange_rate"
PRICE_PREFIX = "security_price"


def rate_prefix(pair: Optional[RatePair] = None) -> str:
    if pair is None:
        return f"{RATE_PREFIX}/"
    return f"{RATE_PREFIX}/{pair.from_currency}/{pair.to_currency}/"


def rate_key(pair: RatePair, on: date) -> str:
    return f"{rate_prefix(pair)}{on.isoformat()}"


def price_prefix(security: Optional[Security] = None) -> str:
    if security is None:
        return f"{PRICE_PREFIX}/"
    return f"{PRICE_PREFIX}/{security.symbol}/{security.exchange_operating_mic or ''}/"


def price_key(security: Security, on: date) -> str:
    return f"{price_prefix(security)}{on.isoformat()}"
