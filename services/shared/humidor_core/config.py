"""Pydantic settings for application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="",
        description="Async SQLAlchemy database URL",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connection pool size",
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Max connections beyond pool size",
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements",
    )


class SubscriptionSettings(BaseSettings):
    """Subscription store and billing settings."""

    model_config = SettingsConfigDict(env_prefix="SUBSCRIPTION_")

    app_id: str = Field(
        default="humidor-hub",
        description="Application ID that namespaces subscription documents",
    )
    backend: Literal["sql", "memory"] = Field(
        default="sql",
        description="Document backend for subscription records",
    )
    load_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Client-side timeout for subscription reads",
    )
    renewal_days: int = Field(
        default=30,
        ge=1,
        description="Days until a new premium subscription renews",
    )
    billing_token: str = Field(
        default="",
        description="Shared secret the billing collaborator sends in X-Billing-Token",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for logs",
    )


class APISettings(BaseSettings):
    """API server settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API server port",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
    )

    service_name: str = Field(
        default="humidor-hub",
        description="Service name for logging",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    subscription: SubscriptionSettings = Field(default_factory=SubscriptionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        The application settings.
    """
    return Settings()


def refresh_settings() -> Settings:
    """Clear settings cache and return fresh settings.

    Returns:
        Fresh application settings.
    """
    get_settings.cache_clear()
    return get_settings()
