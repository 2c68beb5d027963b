"""Fan-out of domain events into webhook deliveries.

Each domain event consumed from the broker becomes one pending delivery per
enabled endpoint of its tenant. The set of endpoints is fixed when the
deliveries are created; endpoints added later do not receive the event.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from dispatch_service.features.webhooks.models import Delivery
from dispatch_service.features.webhooks.repository import DeliveryRepository, EndpointRepository
from dispatch_service.features.webhooks.states import Pending
from dispatch_service.infra.database.session import session_scope
from dispatch_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dispatch_service.features.webhooks.scheduler import DeliveryScheduler
    from dispatch_service.infra.database.session import SessionFactory

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


class DeliveryCreator:
    """Creates deliveries for a domain event and requests their first attempt."""

    def __init__(
        self,
        session_factory: SessionFactory,
        scheduler: DeliveryScheduler,
        *,
        endpoint_repository: EndpointRepository | None = None,
        delivery_repository: DeliveryRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._scheduler = scheduler
        self._endpoints = endpoint_repository or EndpointRepository()
        self._deliveries = delivery_repository or DeliveryRepository()

    async def create_deliveries_for_event(
        self,
        event_type: str,
        message: dict[str, Any],
    ) -> Sequence[Delivery]:
        """Create one pending delivery per enabled endpoint of the event's tenant.

        Args:
            event_type: Domain event type (the queue it was consumed from)
            message: Event body; must carry ``tenantId``

        Returns:
            The created deliveries (empty when the message has no tenant or
            the tenant has no enabled endpoint)
        """
        tenant_id = message.get("tenantId")
        if not tenant_id:
            logger.warning(
                "Event without tenantId dropped",
                extra={"event_type": event_type, "operation": "dispatcher.create_deliveries"},
            )
            return []

        async with session_scope(self._session_factory) as session:
            endpoints = await self._endpoints.find_enabled_for_tenant(session, str(tenant_id))

            if not endpoints:
                lazy_logger.debug(
                    lambda: f"dispatcher.create_deliveries: event_type={event_type!r}, tenant_id={tenant_id!r} -> no enabled endpoints"
                )
                return []

            deliveries = []
            for endpoint in endpoints:
                delivery = Delivery(
                    tenant_id=endpoint.tenant_id,
                    endpoint_id=endpoint.id,
                    event_type=event_type,
                    payload=message,
                    attempts=0,
                )
                delivery.apply_state(Pending())
                deliveries.append(delivery)

            created = await self._deliveries.create_many(session, deliveries)
            await session.commit()

        logger.info(
            "Event fanned out to webhook endpoints",
            extra={
                "event_type": event_type,
                "tenant_id": tenant_id,
                "delivery_count": len(created),
                "operation": "dispatcher.create_deliveries",
            },
        )

        # Only after commit: a worker must find the row when the message arrives
        for delivery in created:
            await self._scheduler.schedule(delivery.id, 0)

        return created


__all__ = ["DeliveryCreator"]
