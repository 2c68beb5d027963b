"""Context management for structured logging.

Provides automatic context injection into log records using contextvars,
so identifiers such as ``delivery_id`` or ``tenant_id`` set once at the top
of a message handler appear on every log line emitted while handling it.

Each asyncio task gets its own copy of the context, so concurrent handlers
never see each other's fields.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for the current async task.

    Args:
        **kwargs: Key-value pairs to add to logging context.

    Example:
        ```python
        set_log_context(delivery_id=str(delivery.id), tenant_id=delivery.tenant_id)
        logger.info("Attempting delivery")  # Includes delivery_id and tenant_id
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current async task.

    Long-running loops call this between items so fields from one item do
    not leak into the logs of the next.
    """
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Logging filter that injects the contextvars-based context into LogRecords.

    Applied to the root logger so every logger benefits without code changes.
    Existing record attributes (including ``extra=`` fields) are never
    overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject context into log record.

        Returns:
            True (always allow the record to be logged).
        """
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


__all__ = [
    "ContextInjectingFilter",
    "clear_log_context",
    "get_log_context",
    "set_log_context",
]
