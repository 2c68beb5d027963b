"""Repository for the webhooks feature."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_, func, or_, select, update

from dispatch_service.core.database.base import utcnow
from dispatch_service.core.database.repository import BaseRepository, SearchResult
from dispatch_service.features.webhooks.models import Delivery, Endpoint
from dispatch_service.features.webhooks.states import DeliveryState, DeliveryStatus, to_columns

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


class EndpointRepository(BaseRepository[Endpoint]):
    """Repository for Endpoint model.

    Inherits from BaseRepository:
        - get(session, id) -> Endpoint | None
        - get_or_raise(session, id) -> Endpoint
        - search(session, statement, limit, offset) -> SearchResult[Endpoint]
        - create(session, instance) -> Endpoint
        - delete(session, instance) -> None

    Feature-specific methods below.
    """

    def __init__(self) -> None:
        """Initialize with Endpoint model."""
        super().__init__(Endpoint)

    async def find_enabled_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: str,
    ) -> Sequence[Endpoint]:
        """Find the enabled endpoints of one tenant.

        Args:
            session: Database session
            tenant_id: Owning tenant

        Returns:
            Sequence of enabled endpoints, oldest first
        """
        stmt = (
            select(Endpoint)
            .where(Endpoint.tenant_id == tenant_id, Endpoint.enabled == True)  # noqa: E712
            .order_by(Endpoint.created_at.asc())
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.find_enabled_for_tenant: tenant_id={tenant_id!r} -> {len(items)} items"
        )
        return items

    async def get_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: str,
        endpoint_id: UUID,
    ) -> Endpoint | None:
        """Get an endpoint only if it belongs to ``tenant_id``."""
        stmt = select(Endpoint).where(Endpoint.id == endpoint_id, Endpoint.tenant_id == tenant_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def search_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: str,
        *,
        enabled: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[Endpoint]:
        """Search a tenant's endpoints.

        Args:
            session: Database session
            tenant_id: Owning tenant
            enabled: Filter by enabled flag
            limit: Page size
            offset: Results to skip

        Returns:
            SearchResult with endpoints and pagination info
        """
        stmt = select(Endpoint).where(Endpoint.tenant_id == tenant_id)

        if enabled is not None:
            stmt = stmt.where(Endpoint.enabled == enabled)

        stmt = stmt.order_by(Endpoint.created_at.desc())

        search_result = await self.search(session, stmt, limit=limit, offset=offset)

        self._lazy.debug(
            lambda: f"db.search_for_tenant: Endpoint(tenant_id={tenant_id!r}, enabled={enabled}) -> {len(search_result.items)}/{search_result.total}"
        )
        return search_result


class DeliveryRepository(BaseRepository[Delivery]):
    """Repository for Delivery model.

    State changes made by the delivery worker go through ``transition`` so
    two workers handling the same delivery cannot both record an outcome.
    """

    def __init__(self) -> None:
        """Initialize with Delivery model."""
        super().__init__(Delivery)

    async def get_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: str,
        delivery_id: UUID,
    ) -> Delivery | None:
        """Get a delivery only if it belongs to ``tenant_id``."""
        stmt = select(Delivery).where(Delivery.id == delivery_id, Delivery.tenant_id == tenant_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_due(
        self,
        session: AsyncSession,
        *,
        now: datetime | None = None,
        limit: int = 50,
    ) -> Sequence[Delivery]:
        """Find deliveries that should be attempted now.

        Pending deliveries are always due. Retrying deliveries are due once
        their ``next_attempt_at`` has passed.

        Args:
            session: Database session
            now: Reference time (defaults to current UTC time)
            limit: Maximum results

        Returns:
            Sequence of due deliveries, oldest first
        """
        now = now or utcnow()
        stmt = (
            select(Delivery)
            .where(
                or_(
                    Delivery.status == DeliveryStatus.PENDING.value,
                    and_(
                        Delivery.status == DeliveryStatus.RETRYING.value,
                        Delivery.next_attempt_at <= now,
                    ),
                )
            )
            .order_by(Delivery.created_at.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(lambda: f"db.find_due: Delivery(limit={limit}) -> {len(items)} items")
        return items

    async def count_dead(self, session: AsyncSession) -> int:
        """Count dead-lettered deliveries across all tenants."""
        stmt = (
            select(func.count())
            .select_from(Delivery)
            .where(Delivery.status == DeliveryStatus.DEAD.value)
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    async def transition(
        self,
        session: AsyncSession,
        delivery_id: UUID,
        *,
        expected_status: str,
        expected_attempts: int,
        state: DeliveryState,
        attempts: int,
    ) -> bool:
        """Write a new state if the row still matches what was read.

        Args:
            session: Database session
            delivery_id: Delivery to update
            expected_status: Status read before the attempt
            expected_attempts: Attempt count read before the attempt
            state: New state variant
            attempts: New attempt count

        Returns:
            True if the row was updated, False if another writer got there first
        """
        stmt = (
            update(Delivery)
            .where(
                Delivery.id == delivery_id,
                Delivery.status == expected_status,
                Delivery.attempts == expected_attempts,
            )
            .values(**to_columns(state), attempts=attempts, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        updated = (result.rowcount or 0) == 1

        self._lazy.debug(
            lambda: f"db.transition: Delivery({delivery_id}) {expected_status}/{expected_attempts} -> {state.status}/{attempts}: {'ok' if updated else 'stale'}"
        )
        return updated

    async def search_deliveries(
        self,
        session: AsyncSession,
        tenant_id: str,
        *,
        status: str | None = None,
        endpoint_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResult[Delivery]:
        """Search a tenant's deliveries with filters.

        Args:
            session: Database session
            tenant_id: Owning tenant
            status: Filter by delivery status
            endpoint_id: Filter by endpoint
            limit: Page size
            offset: Results to skip

        Returns:
            SearchResult with deliveries, newest first
        """
        stmt = select(Delivery).where(Delivery.tenant_id == tenant_id)

        if status is not None:
            stmt = stmt.where(Delivery.status == status)

        if endpoint_id is not None:
            stmt = stmt.where(Delivery.endpoint_id == endpoint_id)

        stmt = stmt.order_by(Delivery.created_at.desc())

        search_result = await self.search(session, stmt, limit=limit, offset=offset)

        self._lazy.debug(
            lambda: f"db.search_deliveries: tenant_id={tenant_id!r}, status={status}, endpoint_id={endpoint_id} -> {len(search_result.items)}/{search_result.total}"
        )
        return search_result


__all__ = ["DeliveryRepository", "EndpointRepository"]
