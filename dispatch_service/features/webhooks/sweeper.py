"""Periodic re-enqueueing of due deliveries.

The sweeper is what makes in-process retry timers optional: any pending
delivery, and any retrying delivery whose ``next_attempt_at`` has passed,
gets a fresh attempt message on every pass until an attempt settles it.
A delivery whose timer already fired may be enqueued twice; the worker drops
the duplicate once the first attempt has been recorded.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dispatch_service.features.webhooks.repository import DeliveryRepository
from dispatch_service.infra.database.session import session_scope
from dispatch_service.infra.tasks.periodic import PeriodicWorker

if TYPE_CHECKING:
    from datetime import datetime

    from dispatch_service.features.webhooks.scheduler import DeliveryScheduler
    from dispatch_service.infra.database.session import SessionFactory
    from dispatch_service.infra.metrics.delivery import DeliveryMetrics

logger = logging.getLogger(__name__)


class DueRetrySweeper(PeriodicWorker):
    """Publishes attempt messages for due deliveries at a fixed interval."""

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        scheduler: DeliveryScheduler,
        metrics: DeliveryMetrics,
        batch_size: int = 50,
        interval: float = 5.0,
        repository: DeliveryRepository | None = None,
    ) -> None:
        super().__init__(interval=interval, name="due-retry-sweeper")
        self.batch_size = batch_size

        self._session_factory = session_factory
        self._scheduler = scheduler
        self._metrics = metrics
        self._repo = repository or DeliveryRepository()

    async def run_once(self) -> int:
        """Run one sweep (PeriodicWorker hook)."""
        return await self.sweep_once()

    async def sweep_once(self, *, now: datetime | None = None) -> int:
        """Enqueue one batch of due deliveries.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of deliveries enqueued
        """
        async with session_scope(self._session_factory) as session:
            due = await self._repo.find_due(session, now=now, limit=self.batch_size)
            delivery_ids = [delivery.id for delivery in due]
            dead = await self._repo.count_dead(session)

        self._metrics.set_dlq_depth(dead)

        for delivery_id in delivery_ids:
            await self._scheduler.schedule(delivery_id, 0)

        if delivery_ids:
            logger.info(
                "Due deliveries enqueued",
                extra={"count": len(delivery_ids), "dlq_depth": dead, "operation": "sweeper.sweep"},
            )
        return len(delivery_ids)


__all__ = ["DueRetrySweeper"]
