"""Async engine and session factory helpers."""

from dispatch_service.infra.database.session import (
    SessionFactory,
    create_engine_from_settings,
    create_session_factory,
    init_models,
    session_scope,
)

__all__ = [
    "SessionFactory",
    "create_engine_from_settings",
    "create_session_factory",
    "init_models",
    "session_scope",
]
