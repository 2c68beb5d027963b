"""RabbitMQ messaging via FastStream."""

from dispatch_service.infra.messaging.broker import (
    ConnectionState,
    check_broker_health,
    create_broker,
    start_broker,
    stop_broker,
)
from dispatch_service.infra.messaging.conventions import (
    DELIVER_QUEUE,
    DELIVERY_UPDATED_EVENT,
    EVENT_TYPE_HEADER,
    TENANT_ID_HEADER,
    queue_for_event,
)

__all__ = [
    "DELIVERY_UPDATED_EVENT",
    "DELIVER_QUEUE",
    "EVENT_TYPE_HEADER",
    "TENANT_ID_HEADER",
    "ConnectionState",
    "check_broker_health",
    "create_broker",
    "queue_for_event",
    "start_broker",
    "stop_broker",
]
