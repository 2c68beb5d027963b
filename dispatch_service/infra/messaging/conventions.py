"""Queue and header naming conventions for the delivery pipeline.

Domain events are published to a queue named after the event type
(``order.created``, ``return.label_generated``, ...). The names below are
the queues and headers the delivery engine itself owns.
"""

from __future__ import annotations

DELIVER_QUEUE: str = "webhooks.deliver"
"""Delivery-attempt queue. Body: ``{"deliveryId": "<uuid>"}``."""

DELIVERY_UPDATED_EVENT: str = "webhook.delivery_updated"
"""Event type (and therefore queue) announcing every delivery state change."""

EVENT_TYPE_HEADER: str = "x-event-type"
"""AMQP header carrying the outbox event type alongside the payload."""

TENANT_ID_HEADER: str = "x-tenant-id"
"""AMQP header carrying the tenant of an outbox event."""


def queue_for_event(event_type: str) -> str:
    """Queue name a domain event of ``event_type`` is published to."""
    return event_type


__all__ = [
    "DELIVERY_UPDATED_EVENT",
    "DELIVER_QUEUE",
    "EVENT_TYPE_HEADER",
    "TENANT_ID_HEADER",
    "queue_for_event",
]
