"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dispatch_service.core.settings import get_app_settings
from dispatch_service.features.health.router import router as health_router
from dispatch_service.features.metrics.router import router as metrics_router
from dispatch_service.features.webhooks.router import router as webhooks_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from dispatch_service.core.settings.app import AppSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, app_settings: AppSettings | None = None) -> None:
    """Register all feature routers with the application.

    The management routes live under the API prefix; ``/metrics`` and
    ``/health`` stay at the root where scrapers and probes expect them.
    """
    settings = app_settings or get_app_settings()

    app.include_router(webhooks_router, prefix=settings.api_prefix)
    app.include_router(metrics_router)
    app.include_router(health_router)

    logger.debug("Routers configured", extra={"api_prefix": settings.api_prefix})
