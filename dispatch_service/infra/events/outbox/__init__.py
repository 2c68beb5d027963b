"""Transactional outbox pattern implementation.

The outbox pattern ensures reliable event publishing by:
1. Writing events to a database table in the same transaction as domain changes
2. Draining the table asynchronously into the message broker
3. Marking events as published after a successful publish

This guarantees at-least-once delivery semantics.
"""

from dispatch_service.infra.events.outbox.models import OutboxEvent, OutboxStatus
from dispatch_service.infra.events.outbox.processor import OutboxProcessor
from dispatch_service.infra.events.outbox.publisher import EventPublisher
from dispatch_service.infra.events.outbox.repository import OutboxRepository

__all__ = [
    "EventPublisher",
    "OutboxEvent",
    "OutboxProcessor",
    "OutboxRepository",
    "OutboxStatus",
]
