"""FastAPI application factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI

from dispatch_service.app.exception_handlers import configure_exception_handlers
from dispatch_service.app.lifespan import lifespan
from dispatch_service.app.router import setup_routers
from dispatch_service.core.settings import get_settings

if TYPE_CHECKING:
    from dispatch_service.runtime import DispatchRuntime


def create_app(
    runtime: DispatchRuntime | None = None,
    *,
    manage_runtime: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        runtime: Runtime serving the routes; built from settings on startup
            when omitted
        manage_runtime: Start and stop the runtime with the application

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    app_settings = settings.app

    app = FastAPI(
        title=app_settings.title,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    app.state.manage_runtime = manage_runtime

    configure_exception_handlers(app)
    setup_routers(app, app_settings)

    return app
