# src/marketcache/app.py
"""
Application Entry Point - Composition Root and Operations CLI

This module wires all dependencies: it builds the ephemeral cache store, the
durable record stores, the provider chains and the lookup services from
settings, and exposes the operational commands on the command line.

Commands:
    python -m marketcache stats
    python -m marketcache clear [--rates | --prices]
    python -m marketcache warm --pair USD:EUR --symbol AAPL:XNAS --days 7
    python -m marketcache usage
    python -m marketcache health
    python -m marketcache rate USD EUR [--date 2024-01-31] [--no-cache]
    python -m marketcache price AAPL [--mic XNAS] [--date 2024-01-31] [--no-cache]

Files that USE this module:
- marketcache.__main__ (python -m marketcache)

Files that this module USES:
- marketcache.config (settings)
- marketcache.shared.logging_conf (setup_logging)
- marketcache.adapters.cache (cache stores)
- marketcache.adapters.persistence (record stores)
- marketcache.adapters.providers (provider adapters)
- marketcache.application.* (services and maintenance operations)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations for forward references

import argparse  # Command-line parsing
import json  # Report output
import logging  # Standard library for logging messages and errors
import sys  # Exit codes
from dataclasses import dataclass  # Container for wired services
from datetime import date  # Date arguments
from typing import Callable, Dict, List, Optional, Sequence  # Type hints

from marketcache.adapters.cache import CacheStore, MemoryCacheStore, NullCacheStore, RedisCacheStore
from marketcache.adapters.persistence import price_record_store, rate_record_store
from marketcache.adapters.providers import (
    ExchangeRateApiProvider,
    FinancialModelingPrepProvider,
    FrankfurterProvider,
    MarketDataProvider,
)
from marketcache.application import maintenance
from marketcache.application.prices_service import SecurityPriceService
from marketcache.application.provider_chain import ProviderChain
from marketcache.application.rates_service import ExchangeRateService
from marketcache.application.stats import CacheStats
from marketcache.config.settings import Settings
from marketcache.domain.models import RatePair, Security
from marketcache.shared.clock import utc_today
from marketcache.shared.logging_conf import setup_logging
from marketcache.shared.validators import validate_currency_code, validate_symbol

logger = logging.getLogger(__name__)

# Closed set of provider variants per concept
RATE_PROVIDER_FACTORIES: Dict[str, Callable[..., MarketDataProvider]] = {
    "exchangerate_api": lambda s, **kw: ExchangeRateApiProvider(
        api_key=s.exchangerate_api_key,
        allow_free=s.exchangerate_allow_free,
        free_url=s.exchangerate_free_url,
        timeout=s.http_timeout_seconds,
        **kw,
    ),
    "frankfurter": lambda s, **kw: FrankfurterProvider(
        base_url=s.frankfurter_url,
        enabled=s.frankfurter_enabled,
        timeout=s.http_timeout_seconds,
        **kw,
    ),
}

PRICE_PROVIDER_FACTORIES: Dict[str, Callable[..., MarketDataProvider]] = {
    "financial_modeling_prep": lambda s, **kw: FinancialModelingPrepProvider(
        api_key=s.fmp_api_key,
        base_url=s.fmp_url,
        timeout=s.http_timeout_seconds,
        **kw,
    ),
}


@dataclass
class MarketData:
    """Wired services sharing one cache store and one stats tracker."""
    cache: CacheStore
    stats: CacheStats
    rates: ExchangeRateService
    prices: SecurityPriceService

    @property
    def services(self) -> List:
        return [self.rates, self.prices]


def build_cache(settings: Settings) -> CacheStore:
    """
    Create the ephemeral cache store selected by CACHE_BACKEND.

    A redis backend without REDIS_URL falls back to the memory store.
    """
    backend = settings.cache_backend
    if backend == "none":
        logger.info("Market data cache disabled (CACHE_BACKEND=none)")
        return NullCacheStore()
    if backend == "redis":
        if settings.redis_url:
            logger.info("Market data cache using Redis")
            return RedisCacheStore(settings.redis_url)
        logger.warning("REDIS_URL not set; using memory cache store")
    logger.info("Market data cache using memory store (max %d entries)", settings.cache_max_entries)
    return MemoryCacheStore(max_entries=settings.cache_max_entries)


def build_chain(
    concept: str,
    names: Sequence[str],
    factories: Dict[str, Callable[..., MarketDataProvider]],
    settings: Settings,
    **provider_kwargs,
) -> ProviderChain:
    providers = [factories[name](settings, **provider_kwargs) for name in names]
    chain = ProviderChain(concept, providers)
    logger.info(
        "%s providers: order=%s configured=%s", concept, chain.names, chain.configured_names()
    )
    return chain


def build_services(
    settings: Settings,
    cache: Optional[CacheStore] = None,
    today: Callable[[], date] = utc_today,
) -> MarketData:
    """
    Wire cache, stores, provider chains and services from settings.

    Args:
        settings: Loaded settings
        cache: Optional cache store to use instead of the configured backend
        today: Callable returning the current date

    Returns:
        MarketData with the rate and price services
    """
    cache = cache if cache is not None else build_cache(settings)
    stats = CacheStats()
    provider_kwargs = {"today": today, "error_reporter": stats.record_provider_error}

    rates = ExchangeRateService(
        cache,
        rate_record_store(settings.rate_store_file),
        build_chain("exchange_rates", settings.rate_provider_names, RATE_PROVIDER_FACTORIES, settings, **provider_kwargs),
        stats=stats,
        today=today,
    )
    prices = SecurityPriceService(
        cache,
        price_record_store(settings.price_store_file),
        build_chain("security_prices", settings.price_provider_names, PRICE_PROVIDER_FACTORIES, settings, **provider_kwargs),
        stats=stats,
        today=today,
    )
    return MarketData(cache=cache, stats=stats, rates=rates, prices=prices)


# ============================================================================
# Command line
# ============================================================================


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def _parse_pair(value: str) -> RatePair:
    parts = value.upper().split(":")
    if len(parts) != 2 or not all(validate_currency_code(p) for p in parts):
        raise argparse.ArgumentTypeError(f"Invalid currency pair '{value}', expected FROM:TO")
    return RatePair(parts[0], parts[1])


def _parse_security(value: str) -> Security:
    symbol, _, mic = value.partition(":")
    if not validate_symbol(symbol):
        raise argparse.ArgumentTypeError(f"Invalid symbol '{symbol}'")
    return Security(symbol.upper(), mic.upper() or None)


def _currency(value: str) -> str:
    code = value.upper()
    if not validate_currency_code(code):
        raise argparse.ArgumentTypeError(f"Invalid currency code '{value}'")
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="marketcache", description="Market data cache operations")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Cache entries, durable records and providers per concept")

    clear = sub.add_parser("clear", help="Clear ephemeral caches (durable records are kept)")
    which = clear.add_mutually_exclusive_group()
    which.add_argument("--rates", action="store_true", help="Only exchange rate caches")
    which.add_argument("--prices", action="store_true", help="Only security price caches")

    warm = sub.add_parser("warm", help="Pre-populate caches for recent dates")
    warm.add_argument("--pair", type=_parse_pair, action="append", default=[], help="FROM:TO, repeatable")
    warm.add_argument("--symbol", type=_parse_security, action="append", default=[], help="SYMBOL[:MIC], repeatable")
    warm.add_argument("--days", type=int, default=7, help="Days back from today (default: 7)")

    sub.add_parser("usage", help="Provider usage statistics")
    sub.add_parser("health", help="Probe every configured provider")

    rate = sub.add_parser("rate", help="Look up one exchange rate")
    rate.add_argument("from_currency", type=_currency)
    rate.add_argument("to_currency", type=_currency)
    rate.add_argument("--date", type=_parse_date, default=None)
    rate.add_argument("--no-cache", action="store_true")

    price = sub.add_parser("price", help="Look up one security price")
    price.add_argument("symbol", type=_parse_security)
    price.add_argument("--mic", default=None)
    price.add_argument("--date", type=_parse_date, default=None)
    price.add_argument("--no-cache", action="store_true")

    return parser


def run_command(args: argparse.Namespace, market: MarketData) -> object:
    """Execute a parsed command and return its JSON-serializable result."""
    if args.command == "stats":
        return {
            "concepts": maintenance.status_report(market.services),
            "provider_errors": market.stats.get_summary()["provider_errors"],
        }
    if args.command == "clear":
        if args.rates:
            services = [market.rates]
        elif args.prices:
            services = [market.prices]
        else:
            services = market.services
        return maintenance.clear_caches(services)
    if args.command == "warm":
        if args.days < 1:
            raise ValueError("--days must be at least 1")
        return {
            "exchange_rates": maintenance.warm_cache(market.rates, args.pair, args.days),
            "security_prices": maintenance.warm_cache(market.prices, args.symbol, args.days),
        }
    if args.command == "usage":
        return maintenance.usage_report(market.services)
    if args.command == "health":
        return maintenance.health_report(market.services)
    if args.command == "rate":
        rate = market.rates.find_or_fetch_rate(
            args.from_currency, args.to_currency, args.date, use_cache=not args.no_cache
        )
        return rate.to_json() if rate else None
    if args.command == "price":
        mic = args.mic.upper() if args.mic else args.symbol.exchange_operating_mic
        price = market.prices.find_or_fetch_price(
            args.symbol.symbol, args.date, mic, use_cache=not args.no_cache
        )
        return price.to_json() if price else None
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Parse arguments, wire services and run one operational command.

    Returns:
        Process exit code (0 on success, 1 when a lookup found no value)
    """
    from marketcache.config import settings

    args = build_parser().parse_args(argv)

    setup_logging(
        level=settings.log_level_value,
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
        log_to_stdout=settings.log_stdout,
    )

    market = build_services(settings)
    result = run_command(args, market)
    print(json.dumps(result, indent=2, default=str))
    if args.command in ("rate", "price") and result is None:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
