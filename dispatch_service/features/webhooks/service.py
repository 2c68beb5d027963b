"""Service layer for endpoint management, delivery listing and replay."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dispatch_service.core.database.base import utcnow
from dispatch_service.core.database.exceptions import NotFoundError
from dispatch_service.core.services.base import BaseService
from dispatch_service.features.webhooks.events import WebhookEvents, build_delivery_updated_payload
from dispatch_service.features.webhooks.models import Delivery, Endpoint
from dispatch_service.features.webhooks.repository import DeliveryRepository, EndpointRepository
from dispatch_service.features.webhooks.states import Pending
from dispatch_service.infra.events.outbox.publisher import EventPublisher

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from dispatch_service.core.database.repository import SearchResult
    from dispatch_service.features.webhooks.scheduler import DeliveryScheduler
    from dispatch_service.features.webhooks.schemas import EndpointCreate, EndpointUpdate


class WebhookService(BaseService):
    """Tenant-scoped endpoint and delivery operations.

    Every lookup filters on the caller's tenant; a row owned by another
    tenant is reported as not found. Write operations commit their own
    transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        scheduler: DeliveryScheduler | None = None,
        endpoint_repository: EndpointRepository | None = None,
        delivery_repository: DeliveryRepository | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._scheduler = scheduler
        self._endpoint_repo = endpoint_repository or EndpointRepository()
        self._delivery_repo = delivery_repository or DeliveryRepository()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def create_endpoint(self, tenant_id: str, payload: EndpointCreate) -> Endpoint:
        """Register a new endpoint for ``tenant_id``."""
        endpoint = Endpoint(
            tenant_id=tenant_id,
            url=str(payload.url),
            secret=payload.secret,
            enabled=payload.enabled,
        )
        created = await self._endpoint_repo.create(self._session, endpoint)
        await self._session.commit()

        # INFO level - business event (audit trail)
        self.logger.info(
            "Webhook endpoint created",
            extra={
                "endpoint_id": str(created.id),
                "tenant_id": tenant_id,
                "operation": "service.create_endpoint",
            },
        )
        return created

    async def get_endpoint(self, tenant_id: str, endpoint_id: UUID) -> Endpoint:
        """Fetch one of the tenant's endpoints.

        Raises:
            NotFoundError: If the endpoint does not exist for this tenant
        """
        endpoint = await self._endpoint_repo.get_for_tenant(self._session, tenant_id, endpoint_id)

        self._lazy.debug(
            lambda: f"service.get_endpoint({endpoint_id}) -> {'found' if endpoint else 'not found'}"
        )
        if endpoint is None:
            raise NotFoundError("Endpoint", {"id": str(endpoint_id)})
        return endpoint

    async def list_endpoints(
        self,
        tenant_id: str,
        *,
        enabled: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[Endpoint]:
        """List the tenant's endpoints, newest first."""
        return await self._endpoint_repo.search_for_tenant(
            self._session, tenant_id, enabled=enabled, limit=limit, offset=offset
        )

    async def update_endpoint(
        self,
        tenant_id: str,
        endpoint_id: UUID,
        payload: EndpointUpdate,
    ) -> Endpoint:
        """Apply the fields set in ``payload`` to an endpoint.

        Raises:
            NotFoundError: If the endpoint does not exist for this tenant
        """
        endpoint = await self.get_endpoint(tenant_id, endpoint_id)

        updates = payload.model_dump(exclude_unset=True)
        if updates.get("url") is not None:
            endpoint.url = str(updates["url"])
        if updates.get("secret") is not None:
            endpoint.secret = updates["secret"]
        if updates.get("enabled") is not None:
            endpoint.enabled = updates["enabled"]

        await self._session.flush()
        await self._session.commit()
        await self._session.refresh(endpoint)

        self.logger.info(
            "Webhook endpoint updated",
            extra={
                "endpoint_id": str(endpoint_id),
                "fields": sorted(updates),
                "operation": "service.update_endpoint",
            },
        )
        return endpoint

    async def delete_endpoint(self, tenant_id: str, endpoint_id: UUID) -> None:
        """Delete an endpoint and, by cascade, its deliveries.

        Raises:
            NotFoundError: If the endpoint does not exist for this tenant
        """
        endpoint = await self.get_endpoint(tenant_id, endpoint_id)
        await self._endpoint_repo.delete(self._session, endpoint)
        await self._session.commit()

    # ------------------------------------------------------------------
    # Deliveries
    # ------------------------------------------------------------------

    async def list_deliveries(
        self,
        tenant_id: str,
        *,
        status: str | None = None,
        endpoint_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResult[Delivery]:
        """List the tenant's deliveries, newest first."""
        search_result = await self._delivery_repo.search_deliveries(
            self._session,
            tenant_id,
            status=status,
            endpoint_id=endpoint_id,
            limit=limit,
            offset=offset,
        )

        self._lazy.debug(
            lambda: f"service.list_deliveries(status={status}, endpoint_id={endpoint_id}) -> {len(search_result.items)}/{search_result.total}"
        )
        return search_result

    async def get_delivery(self, tenant_id: str, delivery_id: UUID) -> Delivery:
        """Fetch one of the tenant's deliveries.

        Raises:
            NotFoundError: If the delivery does not exist for this tenant
        """
        delivery = await self._delivery_repo.get_for_tenant(self._session, tenant_id, delivery_id)
        if delivery is None:
            raise NotFoundError("Delivery", {"id": str(delivery_id)})
        return delivery

    async def replay_delivery(self, tenant_id: str, delivery_id: UUID) -> Delivery:
        """Reset a delivery to pending with zero attempts and request an attempt.

        Replaying an already pending delivery leaves it pending with zero
        attempts, so repeated calls converge on the same state.

        Raises:
            NotFoundError: If the delivery does not exist for this tenant
        """
        delivery = await self.get_delivery(tenant_id, delivery_id)
        previous_status = delivery.status

        state = Pending(next_attempt_at=utcnow())
        delivery.apply_state(state)
        delivery.attempts = 0

        await EventPublisher(self._session).stage(
            WebhookEvents.DELIVERY_UPDATED,
            build_delivery_updated_payload(
                tenant_id=tenant_id,
                delivery_id=delivery.id,
                state=state,
                attempts=0,
            ),
            tenant_id=tenant_id,
        )
        await self._session.commit()

        # INFO level - manual intervention (audit trail)
        self.logger.info(
            "Delivery replay requested",
            extra={
                "delivery_id": str(delivery_id),
                "tenant_id": tenant_id,
                "previous_status": previous_status,
                "operation": "service.replay_delivery",
            },
        )

        if self._scheduler is not None:
            await self._scheduler.schedule(delivery.id, 0)
        return delivery


__all__ = ["WebhookService"]
