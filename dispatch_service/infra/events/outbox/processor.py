"""Background outbox drain for reliable event publishing.

Each pass:
1. Claims up to ``batch_size`` pending events, oldest first
2. Publishes each one to the queue named by its type
3. Marks it published, or counts the failed attempt and leaves it pending
4. Commits the whole batch once

A pending event is retried on every pass until a publish succeeds; there is
no attempt ceiling. Publishing happens before the commit, so a crash between
the two re-publishes the event on the next pass (at-least-once).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dispatch_service.infra.database.session import session_scope
from dispatch_service.infra.events.outbox.repository import OutboxRepository
from dispatch_service.infra.messaging.conventions import (
    EVENT_TYPE_HEADER,
    TENANT_ID_HEADER,
    queue_for_event,
)
from dispatch_service.infra.tasks.periodic import PeriodicWorker

if TYPE_CHECKING:
    from faststream.rabbit import RabbitBroker

    from dispatch_service.infra.database.session import SessionFactory
    from dispatch_service.infra.events.outbox.models import OutboxEvent
    from dispatch_service.infra.metrics.delivery import DeliveryMetrics

logger = logging.getLogger(__name__)


class OutboxProcessor(PeriodicWorker):
    """Drains the outbox table into the broker.

    Attributes:
        batch_size: Events claimed per pass
        poll_interval: Seconds between passes when the last batch was not full
    """

    def __init__(
        self,
        *,
        broker: RabbitBroker,
        session_factory: SessionFactory,
        metrics: DeliveryMetrics,
        batch_size: int = 50,
        poll_interval: float = 5.0,
        repository: OutboxRepository | None = None,
    ) -> None:
        super().__init__(interval=poll_interval, name="outbox-processor")
        self.batch_size = batch_size
        self.poll_interval = poll_interval

        self._broker = broker
        self._session_factory = session_factory
        self._metrics = metrics
        self._repo = repository or OutboxRepository()
        self._last_claimed = 0

    async def run_once(self) -> int:
        """Run one drain pass (PeriodicWorker hook)."""
        return await self.drain_once()

    def next_delay(self, handled: int) -> float:
        """Go again immediately while full batches keep publishing."""
        if handled > 0 and self._last_claimed >= self.batch_size:
            return 0.0
        return self.poll_interval

    async def drain_once(self) -> int:
        """Publish one batch of pending events.

        Returns:
            Number of events published in this pass
        """
        published_types: list[str] = []

        async with session_scope(self._session_factory) as session:
            events = await self._repo.fetch_pending(session, batch_size=self.batch_size)
            self._last_claimed = len(events)

            if not events:
                return 0

            logger.debug("Processing outbox batch", extra={"batch_size": len(events)})

            for event in events:
                try:
                    await self._publish_event(event)
                except Exception as e:
                    await self._repo.mark_failed(session, event.id)
                    logger.warning(
                        "Failed to publish outbox event, will retry next pass",
                        extra={
                            "event_id": str(event.id),
                            "event_type": event.type,
                            "attempts": event.attempts + 1,
                            "error": str(e),
                            "operation": "outbox.publish",
                        },
                    )
                    continue

                await self._repo.mark_published(session, event.id)
                published_types.append(event.type)

            await session.commit()

        for event_type in published_types:
            self._metrics.record_published(event_type)

        if published_types:
            logger.info(
                "Outbox batch processed",
                extra={
                    "published": len(published_types),
                    "claimed": self._last_claimed,
                    "operation": "outbox.drain",
                },
            )
        return len(published_types)

    async def _publish_event(self, event: OutboxEvent) -> None:
        """Publish a single event to its queue.

        Raises:
            Exception: If publishing fails
        """
        message: dict[str, Any] = dict(event.payload)
        message.setdefault("tenantId", event.tenant_id)
        if event.created_at is not None:
            message.setdefault("at", event.created_at.isoformat())

        await self._broker.publish(
            message,
            queue=queue_for_event(event.type),
            headers={EVENT_TYPE_HEADER: event.type, TENANT_ID_HEADER: event.tenant_id},
            correlation_id=str(event.id),
        )


__all__ = ["OutboxProcessor"]
