"""Repository for OutboxEvent operations.

Provides methods for:
- Claiming pending events for the drain worker
- Recording publish successes and failures
- Pruning old published events
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update

from dispatch_service.core.database.base import utcnow
from dispatch_service.core.database.repository import BaseRepository
from dispatch_service.infra.events.outbox.models import OutboxEvent, OutboxStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


class OutboxRepository(BaseRepository[OutboxEvent]):
    """Repository for outbox event operations."""

    def __init__(self) -> None:
        """Initialize repository with OutboxEvent model."""
        super().__init__(OutboxEvent)

    async def fetch_pending(
        self,
        session: AsyncSession,
        *,
        batch_size: int = 50,
    ) -> Sequence[OutboxEvent]:
        """Claim pending events, oldest first.

        Rows are locked with FOR UPDATE SKIP LOCKED on PostgreSQL so
        concurrent drain workers claim disjoint batches. The lock is held
        until the caller's transaction ends.

        Args:
            session: Database session
            batch_size: Maximum number of events to fetch

        Returns:
            Sequence of pending OutboxEvent records
        """
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.status == OutboxStatus.PENDING.value)
            .order_by(OutboxEvent.created_at.asc())
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )

        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(lambda: f"db.fetch_pending: OutboxEvent(limit={batch_size}) -> {len(items)} items")
        return items

    async def mark_published(self, session: AsyncSession, event_id: UUID) -> None:
        """Mark an event published and count the attempt."""
        stmt = (
            update(OutboxEvent)
            .where(OutboxEvent.id == event_id)
            .values(
                status=OutboxStatus.PUBLISHED.value,
                attempts=OutboxEvent.attempts + 1,
                published_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    async def mark_failed(self, session: AsyncSession, event_id: UUID) -> None:
        """Count a failed publish attempt; the event stays pending."""
        stmt = (
            update(OutboxEvent)
            .where(OutboxEvent.id == event_id)
            .values(attempts=OutboxEvent.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)

    async def count_pending(self, session: AsyncSession) -> int:
        """Count events waiting to be published."""
        stmt = (
            select(func.count())
            .select_from(OutboxEvent)
            .where(OutboxEvent.status == OutboxStatus.PENDING.value)
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    async def list_by_type(
        self,
        session: AsyncSession,
        event_type: str,
    ) -> Sequence[OutboxEvent]:
        """List events of one type, oldest first."""
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.type == event_type)
            .order_by(OutboxEvent.created_at.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def cleanup_published(
        self,
        session: AsyncSession,
        *,
        older_than_days: int = 7,
    ) -> int:
        """Delete published events older than ``older_than_days``.

        Pending rows are never touched.

        Returns:
            Number of events deleted
        """
        cutoff = utcnow() - timedelta(days=older_than_days)
        stmt = delete(OutboxEvent).where(
            OutboxEvent.status == OutboxStatus.PUBLISHED.value,
            OutboxEvent.published_at < cutoff,
        )
        result = await session.execute(stmt)
        deleted = result.rowcount or 0

        if deleted:
            self._logger.info(
                "Published outbox events pruned",
                extra={"deleted": deleted, "older_than_days": older_than_days, "operation": "db.cleanup_published"},
            )
        return deleted


__all__ = ["OutboxRepository"]
