"""Database commands."""

import sys

import click

from dispatch_service.cli.utils import coro, error, info, success


@click.command(name="init-db")
@coro
async def init_db() -> None:
    """Create the outbox, endpoint and delivery tables if missing."""
    from dispatch_service.core.settings import get_db_settings
    from dispatch_service.infra.database.session import create_engine_from_settings, init_models

    db_settings = get_db_settings()
    if not db_settings.is_configured:
        error("Database is not configured (set DB_DATABASE_URL)")
        sys.exit(1)

    engine = create_engine_from_settings(db_settings)
    try:
        info(f"Creating tables on {engine.dialect.name}")
        await init_models(engine)
    finally:
        await engine.dispose()
    success("Database tables ready")
