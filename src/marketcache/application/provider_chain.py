# src/marketcache/application/provider_chain.py
"""
Provider Chain - Ordered Provider Fallback per Data Concept

Holds the ordered provider adapters for one concept (exchange rates or
security prices). Selection happens at call time: the first adapter whose
is_configured() is true serves the whole request. Requests are never split
across adapters, and a failing adapter does not hand over to the next one
within the same request.

Files that USE this module:
- marketcache.application.lookup (selects the adapter for provider fetches)
- marketcache.application.maintenance (configured provider names and usage)
- marketcache.app (builds one chain per concept from settings)

Files that this module USES:
- marketcache.adapters.providers.base (MarketDataProvider interface)
- marketcache.domain.models (UsageData)
"""
from __future__ import annotations

import logging
from typing import Dict, Generic, List, Optional, Sequence, TypeVar

from marketcache.adapters.providers.base import MarketDataProvider
from marketcache.domain.models import UsageData

log = logging.getLogger(__name__)

P = TypeVar("P", bound=MarketDataProvider)


class ProviderChain(Generic[P]):
    def __init__(self, concept: str, providers: Sequence[P] = ()):
        """
        Initialize provider chain.

        Args:
            concept: Data concept name (for logging), e.g. "exchange_rates"
            providers: Adapters in fallback order
        """
        self.concept = concept
        self.providers: List[P] = list(providers)

    def select(self) -> Optional[P]:
        """
        Return the first configured provider, or None when none is configured.
        """
        for provider in self.providers:
            if provider.is_configured():
                return provider
        log.debug("No configured provider for %s", self.concept)
        return None

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.providers]

    def configured_names(self) -> List[str]:
        return [p.name for p in self.providers if p.is_configured()]

    def health(self) -> Dict[str, bool]:
        """Probe result per configured provider."""
        return {p.name: p.healthy() for p in self.providers if p.is_configured()}

    def usage(self) -> Dict[str, Optional[UsageData]]:
        """
        Usage per configured provider; None where the usage call failed.
        """
        report: Dict[str, Optional[UsageData]] = {}
        for provider in self.providers:
            if not provider.is_configured():
                continue
            response = provider.usage()
            report[provider.name] = response.data if response.success else None
        return report
