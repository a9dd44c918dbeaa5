# src/marketcache/shared/clock.py
"""
Clock - Current Date Source

Services and providers take a `today` callable so tests can pin the date;
this is the default implementation.
"""
from datetime import date, datetime, timezone


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()
