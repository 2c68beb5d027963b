"""Delivery-attempt scheduling.

An attempt is requested by publishing ``{"deliveryId": ...}`` to the
``webhooks.deliver`` queue. Delayed attempts are armed as APScheduler
``date`` jobs in this process. Those timers are only a latency
optimization: they are lost on restart, and the due-retry sweeper picks up
anything whose persisted ``next_attempt_at`` has passed.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import (
    AsyncIOScheduler,  # type: ignore[import-untyped]
)
from apscheduler.triggers.date import DateTrigger  # type: ignore[import-untyped]

from dispatch_service.infra.messaging.conventions import DELIVER_QUEUE

if TYPE_CHECKING:
    from uuid import UUID

    from faststream.rabbit import RabbitBroker

logger = logging.getLogger(__name__)


def timer_job_id(delivery_id: UUID | str) -> str:
    """APScheduler job id of the timer armed for a delivery."""
    return f"deliver-{delivery_id}"


class DeliveryScheduler:
    """Requests delivery attempts now or after a delay.

    Timers armed before ``start()`` are kept by APScheduler and fire once
    the scheduler starts.
    """

    def __init__(
        self,
        broker: RabbitBroker,
        *,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._broker = broker
        self._scheduler = scheduler or AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                # A late timer is still worth firing; the sweeper covers lost ones
                "misfire_grace_time": None,
            },
        )

    @property
    def running(self) -> bool:
        """Whether the timer scheduler is started."""
        return bool(self._scheduler.running)

    @property
    def armed_timers(self) -> int:
        """Number of timers waiting to fire."""
        return len(self._scheduler.get_jobs())

    def start(self) -> None:
        """Start the timer scheduler (requires a running event loop)."""
        if self._scheduler.running:
            logger.warning("Delivery scheduler is already running")
            return
        self._scheduler.start()
        logger.info(
            "Delivery scheduler started",
            extra={"armed_timers": self.armed_timers, "operation": "scheduler.start"},
        )

    def stop(self) -> None:
        """Stop the timer scheduler, dropping armed timers."""
        if not self._scheduler.running:
            logger.debug("Delivery scheduler is not running")
            return
        self._scheduler.shutdown(wait=False)
        logger.info("Delivery scheduler stopped", extra={"operation": "scheduler.stop"})

    async def schedule(self, delivery_id: UUID | str, delay_ms: int) -> None:
        """Request an attempt for ``delivery_id`` after ``delay_ms``.

        A non-positive delay publishes immediately. Otherwise a timer is
        armed, replacing any timer already armed for the same delivery.
        Failures are logged, never raised.
        """
        if delay_ms <= 0:
            await self.publish_attempt(delivery_id)
            return

        run_date = datetime.now(UTC) + timedelta(milliseconds=delay_ms)
        try:
            self._scheduler.add_job(
                func=self.publish_attempt,
                trigger=DateTrigger(run_date=run_date, timezone=UTC),
                args=[str(delivery_id)],
                id=timer_job_id(delivery_id),
                name=f"Deliver {delivery_id}",
                replace_existing=True,
            )
        except Exception:
            logger.exception(
                "Failed to arm delivery timer, sweeper will pick it up",
                extra={"delivery_id": str(delivery_id), "delay_ms": delay_ms, "operation": "scheduler.schedule"},
            )
            return

        logger.debug(
            "Delivery timer armed",
            extra={"delivery_id": str(delivery_id), "delay_ms": delay_ms, "run_date": run_date.isoformat()},
        )

    async def publish_attempt(self, delivery_id: UUID | str) -> bool:
        """Publish one delivery-attempt message.

        Returns:
            True if the broker accepted the message
        """
        try:
            await self._broker.publish({"deliveryId": str(delivery_id)}, queue=DELIVER_QUEUE)
        except Exception as e:
            logger.warning(
                "Failed to publish delivery attempt, sweeper will retry",
                extra={"delivery_id": str(delivery_id), "error": str(e), "operation": "scheduler.publish"},
            )
            return False
        return True


__all__ = ["DeliveryScheduler", "timer_job_id"]
