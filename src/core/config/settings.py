#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
shop API and its two-tier response cache. All configuration is centralized
here to ensure consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Nested views (settings.redis, settings.cache, ...) over flat env vars
- Easy testing with reload_settings()

Author: Platform Team
Date: 2026-10-18
"""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Distributed cache (Redis) connection configuration.

    STAGE-0.1: Redis connection configuration

    The distributed tier is optional. Without REDIS_URL the service runs
    with the in-process tier only.
    """

    REDIS_URL: str | None = Field(default=None, description="Redis connection URL")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_DB: int = Field(default=0, description="Redis logical database number")
    ENABLE_DISTRIBUTED_CACHE: bool = Field(default=True, description="Attempt distributed caching")

    REDIS_CONNECT_TIMEOUT: float = Field(default=30.0, description="Startup connect timeout (s)")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Per-command timeout (s)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Connection pool size")

    REDIS_RECONNECT_MAX_RETRIES: int = Field(default=10, description="Reconnect attempts before giving up")
    REDIS_RECONNECT_BASE_DELAY: float = Field(default=0.1, description="First reconnect backoff (s)")
    REDIS_RECONNECT_MAX_DELAY: float = Field(default=3.0, description="Backoff ceiling per attempt (s)")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @property
    def distributed_enabled(self) -> bool:
        """Distributed caching is attempted only when switched on AND configured."""
        return self.ENABLE_DISTRIBUTED_CACHE and bool(self.REDIS_URL)


class CacheSettings(BaseSettings):
    """
    Two-tier cache configuration.

    STAGE-2: Cache TTL configuration

    The local tier never keeps an entry longer than CACHE_L1_MAX_TTL, and a
    value pulled up from Redis lives locally for at most CACHE_L1_BACKFILL_TTL.
    """

    ENABLE_CACHING: bool = Field(default=True, description="Master switch for response caching")

    CACHE_L1_MAX_SIZE: int = Field(default=5000, description="Local cache max entries")
    CACHE_L1_DEFAULT_TTL: int = Field(default=300, description="Local cache default TTL (s)")
    CACHE_L1_MAX_TTL: int = Field(default=300, description="Local TTL ceiling for writes (s)")
    CACHE_L1_BACKFILL_TTL: int = Field(default=60, description="Local TTL for Redis backfills (s)")
    CACHE_L1_CHECK_PERIOD: int = Field(default=60, description="Expiry sweep interval (s)")

    CACHE_TTL_PRODUCTS: int = Field(default=300, description="Product listing responses")
    CACHE_TTL_CATEGORIES: int = Field(default=3600, description="Category responses")
    CACHE_TTL_BRANDS: int = Field(default=1800, description="Brand responses")
    CACHE_TTL_STATUS: int = Field(default=30, description="Health/performance responses")
    CACHE_TTL_ROOT: int = Field(default=60, description="Root info response")
    CACHE_TTL_DOCS: int = Field(default=3600, description="API docs response")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @model_validator(mode="after")
    def check_local_ceilings(self):
        """Backfill TTL may not exceed the local ceiling."""
        if self.CACHE_L1_BACKFILL_TTL > self.CACHE_L1_MAX_TTL:
            raise ValueError("CACHE_L1_BACKFILL_TTL must be <= CACHE_L1_MAX_TTL")
        return self


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Shop API", description="Application name")
    APP_VERSION: str = Field(default="2.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=5000, description="API port")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from src.core.config.settings import get_settings

        settings = get_settings()
        redis_url = settings.redis.REDIS_URL
        local_ceiling = settings.cache.CACHE_L1_MAX_TTL
    """

    # Redis settings
    REDIS_URL: str | None = Field(default=None, description="Redis connection URL")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_DB: int = Field(default=0, description="Redis logical database number")
    ENABLE_DISTRIBUTED_CACHE: bool = Field(default=True, description="Attempt distributed caching")
    REDIS_CONNECT_TIMEOUT: float = Field(default=30.0, description="Startup connect timeout (s)")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5.0, description="Per-command timeout (s)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Connection pool size")
    REDIS_RECONNECT_MAX_RETRIES: int = Field(default=10, description="Reconnect attempts before giving up")
    REDIS_RECONNECT_BASE_DELAY: float = Field(default=0.1, description="First reconnect backoff (s)")
    REDIS_RECONNECT_MAX_DELAY: float = Field(default=3.0, description="Backoff ceiling per attempt (s)")

    # Cache settings
    ENABLE_CACHING: bool = Field(default=True, description="Master switch for response caching")
    CACHE_L1_MAX_SIZE: int = Field(default=5000, description="Local cache max entries")
    CACHE_L1_DEFAULT_TTL: int = Field(default=300, description="Local cache default TTL (s)")
    CACHE_L1_MAX_TTL: int = Field(default=300, description="Local TTL ceiling for writes (s)")
    CACHE_L1_BACKFILL_TTL: int = Field(default=60, description="Local TTL for Redis backfills (s)")
    CACHE_L1_CHECK_PERIOD: int = Field(default=60, description="Expiry sweep interval (s)")
    CACHE_TTL_PRODUCTS: int = Field(default=300, description="Product listing responses")
    CACHE_TTL_CATEGORIES: int = Field(default=3600, description="Category responses")
    CACHE_TTL_BRANDS: int = Field(default=1800, description="Brand responses")
    CACHE_TTL_STATUS: int = Field(default=30, description="Health/performance responses")
    CACHE_TTL_ROOT: int = Field(default=60, description="Root info response")
    CACHE_TTL_DOCS: int = Field(default=3600, description="API docs response")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Shop API", description="Application name")
    APP_VERSION: str = Field(default="2.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=5000, description="API port")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix for versioned routes")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    # Nested configuration views
    @property
    def redis(self) -> 'RedisSettings':
        """Get Redis settings."""
        return RedisSettings(
            REDIS_URL=self.REDIS_URL,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_DB=self.REDIS_DB,
            ENABLE_DISTRIBUTED_CACHE=self.ENABLE_DISTRIBUTED_CACHE,
            REDIS_CONNECT_TIMEOUT=self.REDIS_CONNECT_TIMEOUT,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_RECONNECT_MAX_RETRIES=self.REDIS_RECONNECT_MAX_RETRIES,
            REDIS_RECONNECT_BASE_DELAY=self.REDIS_RECONNECT_BASE_DELAY,
            REDIS_RECONNECT_MAX_DELAY=self.REDIS_RECONNECT_MAX_DELAY,
        )

    @property
    def cache(self) -> 'CacheSettings':
        """Get cache settings."""
        return CacheSettings(
            ENABLE_CACHING=self.ENABLE_CACHING,
            CACHE_L1_MAX_SIZE=self.CACHE_L1_MAX_SIZE,
            CACHE_L1_DEFAULT_TTL=self.CACHE_L1_DEFAULT_TTL,
            CACHE_L1_MAX_TTL=self.CACHE_L1_MAX_TTL,
            CACHE_L1_BACKFILL_TTL=self.CACHE_L1_BACKFILL_TTL,
            CACHE_L1_CHECK_PERIOD=self.CACHE_L1_CHECK_PERIOD,
            CACHE_TTL_PRODUCTS=self.CACHE_TTL_PRODUCTS,
            CACHE_TTL_CATEGORIES=self.CACHE_TTL_CATEGORIES,
            CACHE_TTL_BRANDS=self.CACHE_TTL_BRANDS,
            CACHE_TTL_STATUS=self.CACHE_TTL_STATUS,
            CACHE_TTL_ROOT=self.CACHE_TTL_ROOT,
            CACHE_TTL_DOCS=self.CACHE_TTL_DOCS,
        )

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> 'ApplicationSettings':
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
