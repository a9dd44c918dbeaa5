"""
marketcache - Tiered Market Data Cache

Exchange rates and security prices for a personal-finance application,
served from an ephemeral cache, a durable record store or the first
configured external provider, in that order.
"""

__version__ = "0.1.0"
