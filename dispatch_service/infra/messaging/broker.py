"""RabbitMQ broker construction and lifecycle using FastStream.

The broker is created once per process by the runtime and injected into the
outbox processor, the delivery scheduler and the subscribers. Subscribers
must be registered before ``start_broker`` is awaited.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from faststream.rabbit import RabbitBroker

if TYPE_CHECKING:
    from dispatch_service.core.settings.rabbit import RabbitSettings

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    """Connection states for the RabbitMQ broker."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    FAILED = "failed"


def create_broker(rabbit_settings: RabbitSettings) -> RabbitBroker:
    """Create a FastStream RabbitBroker from settings.

    Raises:
        ValueError: If RabbitMQ is not enabled.
    """
    broker = RabbitBroker(
        rabbit_settings.get_url(),
        graceful_timeout=rabbit_settings.graceful_timeout,
        max_consumers=rabbit_settings.prefetch_count,
        logger=logger,
    )
    logger.debug(
        "RabbitMQ broker created",
        extra={"host": rabbit_settings.host, "operation": "broker.create"},
    )
    return broker


async def start_broker(broker: RabbitBroker, *, connection_timeout: float = 10.0) -> None:
    """Connect the broker and start its subscribers.

    The connection is wrapped with a timeout to prevent indefinite blocking
    if RabbitMQ is unavailable.

    Raises:
        ConnectionError: If the connection does not complete in time.
    """
    if getattr(broker, "running", False):
        logger.debug("RabbitMQ broker already running")
        return

    logger.info(
        "Starting RabbitMQ broker",
        extra={"connection_timeout": connection_timeout, "operation": "broker.start"},
    )
    try:
        await asyncio.wait_for(broker.start(), timeout=connection_timeout)
    except TimeoutError:
        error_msg = f"RabbitMQ connection timeout after {connection_timeout}s"
        logger.error(error_msg, extra={"operation": "broker.start"})
        raise ConnectionError(error_msg) from None
    logger.info("RabbitMQ broker started successfully")


async def stop_broker(broker: RabbitBroker) -> None:
    """Close the broker connection, logging (not raising) close errors."""
    logger.info("Stopping RabbitMQ broker")
    try:
        await broker.close()
        logger.info("RabbitMQ broker stopped successfully")
    except Exception as e:
        logger.exception("Error stopping RabbitMQ broker", extra={"error": str(e)})


async def check_broker_health(broker: RabbitBroker | None) -> dict[str, Any]:
    """Check RabbitMQ broker health status.

    Returns:
        Dictionary containing:
            - status: "healthy", "unhealthy" or "unavailable"
            - state: Connection state
            - is_connected: Boolean connection status
            - reason: Optional reason for unhealthy/unavailable status
    """
    if broker is None:
        return {
            "status": "unavailable",
            "state": ConnectionState.DISCONNECTED.value,
            "is_connected": False,
            "reason": "broker_not_configured",
        }

    try:
        if getattr(broker, "running", False):
            return {
                "status": "healthy",
                "state": ConnectionState.CONNECTED.value,
                "is_connected": True,
            }
        return {
            "status": "unhealthy",
            "state": ConnectionState.DISCONNECTED.value,
            "is_connected": False,
            "reason": "broker_not_running",
        }
    except Exception as e:
        logger.exception("Error checking broker health", extra={"error": str(e)})
        return {
            "status": "unhealthy",
            "state": ConnectionState.FAILED.value,
            "is_connected": False,
            "reason": str(e),
        }


__all__ = [
    "ConnectionState",
    "check_broker_health",
    "create_broker",
    "start_broker",
    "stop_broker",
]
