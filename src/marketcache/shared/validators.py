# src/marketcache/shared/validators.py
"""
Input Validation Utilities - Configuration and Identifier Validation

This module provides validation functions for configuration values and
market identifiers (API keys, currency codes, ticker symbols, provider
names) to prevent errors from invalid configuration or user input.

Files that USE this module:
- marketcache.config.settings (uses validation functions in Settings field validators)
- marketcache.app (validates CLI arguments)

Files that this module USES:
- None (pure utility functions)
"""
import re
from typing import Iterable, List


def validate_api_key(api_key: str, min_length: int = 10) -> bool:
    """
    Validate API key format.

    Args:
        api_key: API key to validate
        min_length: Minimum length requirement

    Returns:
        True if valid, False otherwise
    """
    if not api_key:
        return False

    return len(api_key) >= min_length and not api_key.isspace()


def validate_currency_code(code: str) -> bool:
    """
    Validate an ISO 4217 style currency code (three uppercase letters).

    Args:
        code: Currency code to validate

    Returns:
        True if valid, False otherwise
    """
    if not code:
        return False
    return bool(re.match(r'^[A-Z]{3}$', code))


def validate_symbol(symbol: str) -> bool:
    """
    Validate a ticker symbol (e.g. AAPL, BRK.B, RDS-A, 7203.T).

    Args:
        symbol: Ticker symbol to validate

    Returns:
        True if valid, False otherwise
    """
    if not symbol:
        return False
    return bool(re.match(r'^[A-Za-z0-9][A-Za-z0-9.\-^=]{0,19}$', symbol))


def parse_name_list(value: str) -> List[str]:
    """
    Split a comma-separated list of names, dropping blanks and duplicates.

    Args:
        value: Raw string like "exchangerate_api, frankfurter"

    Returns:
        Ordered list of lower-cased names
    """
    names: List[str] = []
    for part in (value or "").split(","):
        name = part.strip().lower()
        if name and name not in names:
            names.append(name)
    return names


def unknown_names(names: Iterable[str], known: Iterable[str]) -> List[str]:
    """Return the names that are not in `known`, preserving order."""
    known_set = set(known)
    return [n for n in names if n not in known_set]
