#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
rotating photo cache service. All configuration is centralized here to ensure
consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- IDE autocomplete for all settings
- Easy testing with override mechanisms
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """
    Redis configuration for the durable key-value store.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_CONNECT_ATTEMPTS: int = Field(default=3, description="Startup connection attempts")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class UpstreamSettings(BaseSettings):
    """
    Unsplash API configuration.

    STAGE-0.2: Upstream provider configuration
    """

    UNSPLASH_ACCESS_KEY: str | None = Field(default=None, description="Unsplash access key")
    UNSPLASH_BASE_URL: str = Field(default="https://api.unsplash.com", description="Unsplash API base URL")
    UNSPLASH_TIMEOUT: float = Field(default=10.0, description="Upstream request timeout in seconds")
    UNSPLASH_MAX_CONNECTIONS: int = Field(default=20, description="Maximum HTTP connections in pool")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CircuitBreakerSettings(BaseSettings):
    """
    Circuit breaker configuration for the upstream client.

    STAGE-CB: Circuit breaker thresholds
    """

    CB_FAILURE_THRESHOLD: int = Field(default=3, description="Failures before opening circuit")
    CB_RECOVERY_TIMEOUT: int = Field(default=30, description="Seconds before attempting recovery")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Rotating slot cache configuration.

    STAGE-2: Slot cache sizing and key layout
    """

    STORE_BACKEND: Literal["redis", "memory"] = Field(default="redis", description="Key-value store backend")
    CACHE_SLOT_CAPACITY: int = Field(default=30, description="Slots per tier (main and buffer)")
    CACHE_KEY_PREFIX: str = Field(default="photocache", description="Prefix for every store key")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class MetricsSettings(BaseSettings):
    """
    Metrics accumulator configuration.

    STAGE-M: Metrics batching
    """

    METRICS_FLUSH_INTERVAL: float = Field(default=2.0, description="Seconds between metric flushes")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


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

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Photo Rotator", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="", description="Prefix for all API routes")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from src.core.config.settings import get_settings

        settings = get_settings()
        capacity = settings.cache.CACHE_SLOT_CAPACITY
        access_key = settings.upstream.UNSPLASH_ACCESS_KEY
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_CONNECT_ATTEMPTS: int = Field(default=3, description="Startup connection attempts")

    # Upstream settings
    UNSPLASH_ACCESS_KEY: str | None = Field(default=None, description="Unsplash access key")
    UNSPLASH_BASE_URL: str = Field(default="https://api.unsplash.com", description="Unsplash API base URL")
    UNSPLASH_TIMEOUT: float = Field(default=10.0, description="Upstream request timeout in seconds")
    UNSPLASH_MAX_CONNECTIONS: int = Field(default=20, description="Maximum HTTP connections in pool")

    # Circuit Breaker settings
    CB_FAILURE_THRESHOLD: int = Field(default=3, description="Failures before opening circuit")
    CB_RECOVERY_TIMEOUT: int = Field(default=30, description="Seconds before attempting recovery")

    # Cache settings
    STORE_BACKEND: Literal["redis", "memory"] = Field(default="redis", description="Key-value store backend")
    CACHE_SLOT_CAPACITY: int = Field(default=30, gt=0, description="Slots per tier (main and buffer)")
    CACHE_KEY_PREFIX: str = Field(default="photocache", description="Prefix for every store key")

    # Metrics settings
    METRICS_FLUSH_INTERVAL: float = Field(default=2.0, gt=0, description="Seconds between metric flushes")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Photo Rotator", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="", description="Prefix for all API routes")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

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
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_CONNECT_ATTEMPTS=self.REDIS_CONNECT_ATTEMPTS,
        )

    @property
    def upstream(self) -> 'UpstreamSettings':
        """Get upstream provider settings."""
        return UpstreamSettings(
            UNSPLASH_ACCESS_KEY=self.UNSPLASH_ACCESS_KEY,
            UNSPLASH_BASE_URL=self.UNSPLASH_BASE_URL,
            UNSPLASH_TIMEOUT=self.UNSPLASH_TIMEOUT,
            UNSPLASH_MAX_CONNECTIONS=self.UNSPLASH_MAX_CONNECTIONS,
        )

    @property
    def circuit_breaker(self) -> 'CircuitBreakerSettings':
        """Get circuit breaker settings."""
        return CircuitBreakerSettings(
            CB_FAILURE_THRESHOLD=self.CB_FAILURE_THRESHOLD,
            CB_RECOVERY_TIMEOUT=self.CB_RECOVERY_TIMEOUT,
        )

    @property
    def cache(self) -> 'CacheSettings':
        """Get cache settings."""
        return CacheSettings(
            STORE_BACKEND=self.STORE_BACKEND,
            CACHE_SLOT_CAPACITY=self.CACHE_SLOT_CAPACITY,
            CACHE_KEY_PREFIX=self.CACHE_KEY_PREFIX,
        )

    @property
    def metrics(self) -> 'MetricsSettings':
        """Get metrics settings."""
        return MetricsSettings(METRICS_FLUSH_INTERVAL=self.METRICS_FLUSH_INTERVAL)

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> 'ApplicationSettings':
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            DEBUG=self.DEBUG,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            API_BASE_PATH=self.API_BASE_PATH,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
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
