# src/marketcache/shared/__init__.py
"""
Shared Utilities - Cross-cutting Concerns

This package contains shared utilities used across all layers:
- Validation
- Logging configuration
"""

from marketcache.shared.validators import (
    parse_name_list,
    unknown_names,
    validate_api_key,
    validate_currency_code,
    validate_symbol,
)
from marketcache.shared.logging_conf import setup_logging

__all__ = [
    "validate_api_key",
    "validate_currency_code",
    "validate_symbol",
    "parse_name_list",
    "unknown_names",
    "setup_logging",
]
