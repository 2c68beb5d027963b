"""Stage events in the outbox inside the caller's transaction.

Usage:
    async def create_order(session: AsyncSession, data: OrderCreate) -> Order:
        order = Order(**data.model_dump())
        session.add(order)

        publisher = EventPublisher(session)
        await publisher.stage(
            "order.created",
            {"orderId": str(order.id), "total": order.total},
            tenant_id=order.tenant_id,
        )

        # Order and event are committed together
        await session.commit()
        return order
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dispatch_service.infra.events.outbox.models import OutboxEvent, OutboxStatus

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class EventPublisher:
    """Writes events to the outbox table instead of the broker.

    Staging never talks to the broker and never commits: if the caller's
    transaction rolls back, the event is discarded with it. The drain worker
    publishes whatever was committed.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the publisher.

        Args:
            session: Database session (events are written in same transaction)
        """
        self._session = session
        self._pending_count = 0

    async def stage(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        tenant_id: str,
    ) -> OutboxEvent:
        """Stage one event for publishing.

        Args:
            event_type: Event type, also the destination queue
            payload: JSON-serializable event body
            tenant_id: Tenant that owns the event

        Returns:
            The (not yet flushed) outbox row
        """
        entry = OutboxEvent(
            tenant_id=tenant_id,
            type=event_type,
            payload=payload,
            status=OutboxStatus.PENDING.value,
            attempts=0,
        )
        self._session.add(entry)
        self._pending_count += 1

        logger.debug(
            "Event staged in outbox",
            extra={"event_type": event_type, "tenant_id": tenant_id},
        )
        return entry

    @property
    def pending_count(self) -> int:
        """Number of events staged through this publisher."""
        return self._pending_count


__all__ = ["EventPublisher"]
