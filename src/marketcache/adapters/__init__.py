# src/marketcache/adapters/__init__.py
"""
Adapters Layer - External Integrations

This package contains adapters for external systems:
- providers: market data HTTP APIs
- cache: ephemeral cache stores
- persistence: durable record stores
"""
