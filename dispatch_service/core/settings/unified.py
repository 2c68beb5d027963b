"""Unified settings composition for convenient access.

Composes all domain settings into one object. This is purely additive and
does not replace the modular get_*_settings() loaders.

Usage:
    from dispatch_service.core.settings import get_settings

    settings = get_settings()
    print(settings.outbox.batch_size)
    print(settings.webhooks.sweep_interval_seconds)

Note:
    Each nested settings class still loads from its own environment prefix
    (APP_, DB_, RABBIT_, ...), not from a unified prefix.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .app import AppSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .outbox import OutboxSettings
from .rabbit import RabbitSettings
from .webhooks import WebhookSettings


class Settings(BaseSettings):
    """Unified settings composing all domain settings.

    Example:
        settings = Settings()
        assert settings.outbox.batch_size == 50
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    rabbit: RabbitSettings = Field(default_factory=RabbitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    outbox: OutboxSettings = Field(default_factory=OutboxSettings)
    webhooks: WebhookSettings = Field(default_factory=WebhookSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get unified settings instance (cached).

    Returns:
        Settings: Unified settings with all domain configurations.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
