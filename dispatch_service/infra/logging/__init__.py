"""Structured logging: JSONL output, contextvars injection and lazy debug logs.

Usage:
    import logging

    from dispatch_service.infra.logging import set_log_context, setup_logging

    setup_logging()
    logger = logging.getLogger(__name__)

    set_log_context(delivery_id="7f1c...")
    logger.info("Delivery attempted", extra={"operation": "worker.process_delivery"})
"""

from dispatch_service.infra.logging.config import configure_logging, setup_logging, shutdown
from dispatch_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    set_log_context,
)
from dispatch_service.infra.logging.formatters import JSONFormatter
from dispatch_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
