# src/marketcache/application/lookup.py
"""
Tiered Lookup - Read-Through Caching with Provider Fallback

This module contains the lookup engine shared by exchange rates and
security prices. A value for (instrument, date) is resolved through three
tiers, each consulted only when the one before it missed:

    ephemeral cache  ->  durable store  ->  provider (first configured adapter)

A store hit is promoted into the cache; a provider hit is upserted into the
store and then cached. Cache lifetimes come from the concept's TtlPolicy,
computed against the requested date.

Nothing raises past resolve()/resolve_batch(): misses, provider failures and
missing configuration all come back as "no value". Provider failures are
logged and counted in CacheStats.

There is no single-flight locking: concurrent misses for the same identity
may each call the provider; the store's find_or_create absorbs duplicates.

Files that USE this module:
- marketcache.application.rates_service (ExchangeRateService)
- marketcache.application.prices_service (SecurityPriceService)

Files that this module USES:
- marketcache.adapters.cache.base (CacheStore protocol)
- marketcache.application.batch (partition / span / merge steps)
- marketcache.application.provider_chain (adapter selection)
- marketcache.application.stats (CacheStats)
- marketcache.application.ttl_policy (TtlPolicy)
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from decimal import InvalidOperation
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Protocol, Tuple, TypeVar

from marketcache.adapters.cache.base import CacheStore, Payload
from marketcache.application.batch import merge_by_date, missing_span, partition_dates
from marketcache.application.provider_chain import ProviderChain
from marketcache.application.stats import (
    CACHE_HIT,
    NOT_FOUND,
    PROVIDER_FAILURE,
    PROVIDER_FETCH,
    RECORD_WRITE,
    STORE_HIT,
    CacheStats,
)
from marketcache.application.ttl_policy import TtlPolicy
from marketcache.domain.errors import ProviderError, StoreError
from marketcache.domain.models import ProviderResponse
from marketcache.shared.clock import utc_today

log = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class RecordStore(Protocol[V]):
    """Protocol for the durable tier."""

    def find_by(self, identity: Tuple[Any, ...]) -> Optional[V]:
        ...

    def find_or_create(self, identity: Tuple[Any, ...], value: V) -> V:
        ...

    def count(self) -> int:
        ...


class MarketDataService(ABC, Generic[K, V]):
    """
    Tiered lookup for one data concept.

    K is the instrument key without a date (RatePair, Security), V the
    dated value (Rate, Price). Subclasses supply keys, payload codecs and
    the degenerate-value shortcut.
    """

    concept: str = "market_data"

    def __init__(
        self,
        cache: CacheStore,
        store: RecordStore[V],
        providers: ProviderChain,
        ttl_policy: TtlPolicy,
        stats: Optional[CacheStats] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize lookup service.

        Args:
            cache: Ephemeral tier
            store: Durable tier
            providers: Ordered provider adapters for this concept
            ttl_policy: Cache lifetime policy
            stats: Statistics tracker (a private one is created when omitted)
            today: Callable returning the current date (defaults to UTC today)
        """
        self.cache = cache
        self.store = store
        self.providers = providers
        self.ttl_policy = ttl_policy
        self.stats = stats or CacheStats()
        self.today = today or utc_today

    # ------------------------------------------------------------------
    # Concept hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def fingerprint(self, key: K, on: date) -> str:
        """Cache key for one instrument on one date."""

    @abstractmethod
    def prefix(self, key: Optional[K] = None) -> str:
        """Cache key prefix for one instrument, or for the whole concept."""

    @abstractmethod
    def identity(self, key: K, on: date) -> Tuple[Any, ...]:
        """Durable store identity for one instrument on one date."""

    @abstractmethod
    def key_of(self, value: V) -> K:
        """Instrument key of a value."""

    @abstractmethod
    def date_of(self, value: V) -> date:
        """Date of a value."""

    @abstractmethod
    def to_payload(self, value: V) -> Payload:
        """Cache payload for a value."""

    @abstractmethod
    def from_payload(self, key: K, on: date, payload: Payload) -> V:
        """Rebuild a value from a cache payload."""

    def degenerate(self, key: K, on: date) -> Optional[V]:
        """Fixed value that bypasses every tier, if the key has one."""
        return None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def resolve(self, key: K, on: date, use_cache: bool = True) -> Optional[V]:
        """
        Resolve one value through cache, store and provider.

        Args:
            key: Instrument key
            on: Requested date
            use_cache: Read and write the ephemeral tier

        Returns:
            The value, or None when no tier and no provider has it. A provider
            may answer with a value dated differently from `on` (a live quote
            for a future date); that value is cached under `on` and keeps its
            own date on later cache hits.
        """
        fixed = self.degenerate(key, on)
        if fixed is not None:
            return fixed

        value = self._lookup_tiers(key, on, use_cache)
        if value is not None:
            return value

        provider = self.providers.select()
        if provider is None:
            log.debug("%s: no provider configured, %s on %s not found", self.concept, key, on)
            self.stats.record(self.concept, NOT_FOUND)
            return None

        response = self._call_provider(provider, "fetch_one", provider.fetch_one, key, on)
        fetched = response.data if response.success else None
        if fetched is not None and self.key_of(fetched) != key:
            self._provider_failed(
                provider.name, ProviderError(f"{provider.name} returned {self.key_of(fetched)} for {key}")
            )
            fetched = None
        if fetched is None:
            self.stats.record(self.concept, NOT_FOUND)
            return None

        self.stats.record(self.concept, PROVIDER_FETCH)
        stored = self._persist(fetched)
        if stored is None:
            return fetched
        if use_cache:
            self._write_cache(self.fingerprint(key, on), on, stored)
        return stored

    def resolve_batch(self, key: K, dates: Iterable[date], use_cache: bool = True) -> List[V]:
        """
        Resolve many dates of one instrument with at most one provider call.

        Args:
            key: Instrument key
            dates: Requested dates (any order, duplicates ignored)
            use_cache: Read and write the ephemeral tier

        Returns:
            Values sorted ascending by date; dates nobody has are omitted
        """
        requested = sorted(set(dates))
        if not requested:
            return []

        if self.degenerate(key, requested[0]) is not None:
            return [self.degenerate(key, on) for on in requested]

        satisfied, missing = partition_dates(
            requested, lambda on: self._lookup_tiers(key, on, use_cache)
        )
        fetched = self._fetch_missing(key, missing, use_cache)

        not_found = sum(1 for on in missing if on not in fetched)
        if not_found:
            self.stats.record(self.concept, NOT_FOUND, not_found)
        return merge_by_date(satisfied, fetched, missing)

    def invalidate(self, key: K, on: date) -> None:
        """Drop one cached value; the durable record is kept."""
        self.cache.delete(self.fingerprint(key, on))

    def invalidate_instrument(self, key: K) -> int:
        """Drop every cached date of one instrument."""
        removed = self.cache.delete_by_prefix(self.prefix(key))
        log.info("%s: cleared %d cache entries for %s", self.concept, removed, key)
        return removed

    def invalidate_all(self) -> int:
        """Drop every cached value of this concept."""
        removed = self.cache.delete_by_prefix(self.prefix())
        log.info("%s: cleared %d cache entries", self.concept, removed)
        return removed

    def cached_count(self) -> int:
        return self.cache.count(self.prefix())

    def record_count(self) -> int:
        return self.store.count()

    # ------------------------------------------------------------------
    # Tier steps
    # ------------------------------------------------------------------

    def _lookup_tiers(self, key: K, on: date, use_cache: bool) -> Optional[V]:
        """Cache then store; a store hit is promoted into the cache."""
        cache_key = self.fingerprint(key, on)

        if use_cache:
            cached = self._read_cache(cache_key, key, on)
            if cached is not None:
                self.stats.record(self.concept, CACHE_HIT)
                log.debug("%s: cache hit %s", self.concept, cache_key)
                return cached

        record = self.store.find_by(self.identity(key, on))
        if record is None:
            return None

        self.stats.record(self.concept, STORE_HIT)
        log.debug("%s: store hit %s", self.concept, cache_key)
        if use_cache:
            self._write_cache(cache_key, on, record)
        return record

    def _read_cache(self, cache_key: str, key: K, on: date) -> Optional[V]:
        payload = self.cache.read(cache_key)
        if payload is None:
            return None
        try:
            return self.from_payload(key, on, payload)
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            log.warning("%s: dropping unreadable cache entry %s: %s", self.concept, cache_key, e)
            self.cache.delete(cache_key)
            return None

    def _write_cache(self, cache_key: str, on: date, value: V) -> None:
        ttl = self.ttl_policy.duration_for(on, self.today())
        self.cache.write(cache_key, self.to_payload(value), ttl)

    def _persist(self, value: V) -> Optional[V]:
        """
        Upsert a fetched value into the durable store.

        Returns:
            The stored record (an earlier one wins a race), or None when the
            store could not be written
        """
        identity = self.identity(self.key_of(value), self.date_of(value))
        try:
            stored = self.store.find_or_create(identity, value)
        except StoreError as e:
            log.error("%s: failed to persist %s: %s", self.concept, identity, e)
            return None
        self.stats.record(self.concept, RECORD_WRITE)
        return stored

    def _fetch_missing(self, key: K, missing: List[date], use_cache: bool) -> Dict[date, V]:
        """
        Fetch the span of missing dates with one range call and store the results.

        Every returned value for this instrument is persisted and cached, also
        dates inside the span that were not requested.

        Returns:
            Stored values by date
        """
        span = missing_span(missing)
        if span is None:
            return {}

        provider = self.providers.select()
        if provider is None:
            log.debug("%s: no provider configured for %d missing dates of %s", self.concept, len(missing), key)
            return {}

        start, end = span
        response = self._call_provider(provider, "fetch_range", provider.fetch_range, key, start, end)
        if not response.success or response.data is None:
            return {}

        self.stats.record(self.concept, PROVIDER_FETCH)
        log.info(
            "%s: %s returned %d values for %s %s..%s",
            self.concept, provider.name, len(response.data), key, start, end,
        )

        fetched: Dict[date, V] = {}
        for value in response.data:
            if self.key_of(value) != key:
                log.debug("%s: discarding %s value for %s", self.concept, self.key_of(value), key)
                continue
            on = self.date_of(value)
            stored = self._persist(value)
            if stored is None:
                # Unpersisted values are returned but never cached
                fetched[on] = value
                continue
            if use_cache:
                self._write_cache(self.fingerprint(key, on), on, stored)
            fetched[on] = stored
        return fetched

    def _call_provider(self, provider: Any, operation: str, fn: Callable[..., ProviderResponse], *args: Any) -> ProviderResponse:
        """
        Call a provider operation and map any failure to a failed response.
        """
        log.info("%s: %s.%s %s", self.concept, provider.name, operation, " ".join(str(a) for a in args))
        try:
            response = fn(*args)
        except Exception as e:
            log.exception("%s: %s.%s raised", self.concept, provider.name, operation)
            response = ProviderResponse.failed(e)
        if not response.success:
            self._provider_failed(provider.name, response.error)
        return response

    def _provider_failed(self, provider_name: str, error: Exception) -> None:
        log.warning("%s: provider %s failed: %s", self.concept, provider_name, error)
        self.stats.record(self.concept, PROVIDER_FAILURE)
        self.stats.record_provider_error(provider_name, error)
