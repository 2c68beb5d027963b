"""Modular Pydantic Settings v2 configuration.

One frozen settings class per domain (app/db/broker/logging/outbox/webhooks),
loaded from environment variables and an optional .env file, and cached by
the get_*_settings() loaders.

Import settings via cached loaders:
    from dispatch_service.core.settings import get_webhook_settings

Or use unified settings for convenient access to all domains:
    from dispatch_service.core.settings import get_settings

    settings = get_settings()
    print(settings.rabbit.url)

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file (development only)
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_outbox_settings,
    get_rabbit_settings,
    get_webhook_settings,
)
from .logs import LoggingSettings
from .outbox import OutboxSettings
from .rabbit import RabbitSettings
from .unified import Settings, get_settings
from .webhooks import WebhookSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "OutboxSettings",
    "RabbitSettings",
    # Unified settings
    "Settings",
    "WebhookSettings",
    "clear_all_caches",
    # Individual domain loaders
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_outbox_settings",
    "get_rabbit_settings",
    "get_settings",
    "get_webhook_settings",
]
