"""Database engine and session factory construction.

Unlike a module-level engine, the factories here are built once by the
runtime (or by tests) and passed to every component that needs a session,
so a process can point at PostgreSQL while the test suite points at an
in-memory SQLite database.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dispatch_service.core.database.base import Base

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from dispatch_service.core.settings.database import DatabaseSettings

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


def create_engine_from_settings(db_settings: DatabaseSettings) -> AsyncEngine:
    """Create the async engine described by the database settings.

    Raises:
        ValueError: If no database URL is configured.
    """
    url = db_settings.get_sqlalchemy_url()
    engine_kwargs: dict[str, Any] = {"echo": db_settings.echo}
    if not db_settings.is_sqlite:
        engine_kwargs.update(
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_timeout=db_settings.pool_timeout,
            pool_pre_ping=db_settings.pool_pre_ping,
        )

    engine = create_async_engine(url, **engine_kwargs)
    logger.info(
        "Database engine created",
        extra={"dialect": engine.dialect.name, "operation": "db.create_engine"},
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Create the session factory shared by every component.

    Sessions do not expire on commit so ORM objects stay readable after the
    transaction that loaded them ends (the worker reads delivery fields after
    committing the state transition).
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(session_factory: SessionFactory) -> AsyncIterator[AsyncSession]:
    """Open a session and roll back on error.

    Commits are explicit: callers decide where the transaction ends.
    """
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables registered on the declarative base.

    Used by the ``init-db`` command and the test suite. Production schemas
    are owned by the deployment's migration tooling.
    """
    # Ensure every model module is imported so its table is registered
    import dispatch_service.features.webhooks.models  # noqa: F401
    import dispatch_service.infra.events.outbox.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(
        "Database tables ensured",
        extra={"tables": sorted(Base.metadata.tables), "operation": "db.init_models"},
    )


__all__ = [
    "SessionFactory",
    "create_engine_from_settings",
    "create_session_factory",
    "init_models",
    "session_scope",
]
