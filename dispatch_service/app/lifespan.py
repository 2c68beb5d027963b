"""Application lifespan management.

Startup Order:
1. Logging
2. Runtime: broker, delivery scheduler, sweeper, outbox processor

Shutdown Order: Reverse of startup.

An application created with an existing runtime (tests, embedding) uses that
runtime; otherwise one is built from settings here. The runtime is only
started and stopped by the lifespan when ``app.state.manage_runtime`` is set.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from dispatch_service.core.settings import get_settings
from dispatch_service.infra.logging.config import setup_logging
from dispatch_service.runtime import DispatchRuntime

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the dispatch runtime for the lifetime of the application."""
    settings = get_settings()
    setup_logging(settings.logging)

    runtime: DispatchRuntime | None = getattr(app.state, "runtime", None)
    if runtime is None:
        runtime = DispatchRuntime.build(settings)
        app.state.runtime = runtime

    manage = getattr(app.state, "manage_runtime", True)
    if manage:
        await runtime.start()

    logger.info(
        "Application started",
        extra={
            "service": settings.app.service_name,
            "environment": settings.app.environment,
            "operation": "app.lifespan",
        },
    )
    try:
        yield
    finally:
        if manage:
            await runtime.stop()
        logger.info("Application stopped", extra={"operation": "app.lifespan"})
