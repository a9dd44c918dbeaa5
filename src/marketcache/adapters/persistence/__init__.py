# src/marketcache/adapters/persistence/__init__.py
"""
Persistence Adapters - Durable Record Storage

This package contains the durable tier for rates and prices.
"""

from marketcache.adapters.persistence.file_store import (
    JsonRecordStore,
    price_record_store,
    rate_record_store,
)

__all__ = [
    "JsonRecordStore",
    "rate_record_store",
    "price_record_store",
]
