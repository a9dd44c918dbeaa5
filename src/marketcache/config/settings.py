# src/marketcache/config/settings.py
"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration management using Pydantic Settings.
Values come from environment variables or a local .env file.

Files that USE this module:
- marketcache.app (composition root: builds stores, providers and services from settings)
- marketcache.adapters.providers.* (providers default their API keys, URLs and timeouts from settings)

Files that this module USES:
- marketcache.shared.validators (validation functions for settings)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import logging  # Log level names
from pathlib import Path  # Object-oriented filesystem paths
from typing import List, Optional  # Type hints for lists and optional values

from pydantic import Field, field_validator  # Data validation and field configuration
from pydantic_settings import BaseSettings, SettingsConfigDict  # Settings management with Pydantic

from marketcache.shared.validators import (
    parse_name_list,  # Split comma-separated provider lists
    unknown_names,  # Detect unsupported provider names
    validate_api_key,  # Validate API key format
)

RATE_PROVIDER_NAMES = ("exchangerate_api", "frankfurter")
PRICE_PROVIDER_NAMES = ("financial_modeling_prep",)
CACHE_BACKENDS = ("memory", "redis", "none")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Exchange rate providers ---
    exchangerate_api_key: str = Field(default="", alias="EXCHANGERATE_API_KEY")
    exchangerate_allow_free: bool = Field(default=False, alias="EXCHANGERATE_ALLOW_FREE")
    exchangerate_free_url: str = Field(
        default="https://api.exchangerate-api.com/v4", alias="EXCHANGERATE_URL"
    )
    frankfurter_url: str = Field(default="https://api.frankfurter.app", alias="FRANKFURTER_URL")
    frankfurter_enabled: bool = Field(default=True, alias="FRANKFURTER_ENABLED")

    # --- Security price providers ---
    fmp_api_key: str = Field(default="", alias="FMP_API_KEY")
    fmp_url: str = Field(default="https://financialmodelingprep.com/api", alias="FMP_URL")

    # --- Provider fallback order (comma-separated, first configured wins) ---
    rate_providers: str = Field(default="exchangerate_api,frankfurter", alias="RATE_PROVIDERS")
    price_providers: str = Field(default="financial_modeling_prep", alias="PRICE_PROVIDERS")

    # --- HTTP Settings ---
    http_timeout_seconds: int = Field(default=10, alias="HTTP_TIMEOUT_SECONDS", ge=1, le=60)

    # --- Ephemeral cache ---
    cache_backend: str = Field(default="memory", alias="CACHE_BACKEND")
    cache_max_entries: int = Field(default=10_000, alias="CACHE_MAX_ENTRIES", ge=1)
    redis_url: str = Field(default="", alias="REDIS_URL")

    # --- Durable stores ---
    rate_store_file: Path = Field(default=Path("./data/exchange_rates.json"), alias="RATE_STORE_FILE")
    price_store_file: Path = Field(default=Path("./data/security_prices.json"), alias="PRICE_STORE_FILE")

    # --- Logging (for server deployment) ---
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_stdout: bool = Field(default=False, alias="MARKETCACHE_LOG_STDOUT")  # CLI prints JSON on stdout
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @property
    def rate_provider_names(self) -> List[str]:
        """Ordered exchange rate provider names."""
        return parse_name_list(self.rate_providers)

    @property
    def price_provider_names(self) -> List[str]:
        """Ordered security price provider names."""
        return parse_name_list(self.price_providers)

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @field_validator("exchangerate_api_key", "fmp_api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate API key format (empty means 'not configured')."""
        v = v.strip()
        if v and not validate_api_key(v):
            raise ValueError("Invalid API key format")
        return v

    @field_validator("rate_providers")
    @classmethod
    def validate_rate_providers(cls, v: str) -> str:
        unknown = unknown_names(parse_name_list(v), RATE_PROVIDER_NAMES)
        if unknown:
            raise ValueError(f"Unknown exchange rate provider(s): {', '.join(unknown)}")
        return v

    @field_validator("price_providers")
    @classmethod
    def validate_price_providers(cls, v: str) -> str:
        unknown = unknown_names(parse_name_list(v), PRICE_PROVIDER_NAMES)
        if unknown:
            raise ValueError(f"Unknown security price provider(s): {', '.join(unknown)}")
        return v

    @field_validator("cache_backend")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in CACHE_BACKENDS:
            raise ValueError(f"CACHE_BACKEND must be one of {', '.join(CACHE_BACKENDS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return v


# Global settings instance
settings = Settings()
