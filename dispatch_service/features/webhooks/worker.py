"""Delivery-attempt execution.

One call of ``process_delivery`` makes at most one HTTP attempt and records
its outcome:

    2xx                  -> delivered
    5xx, 429, transport  -> retrying (backoff timer armed), dead at 5 attempts
    other status         -> failed
    endpoint disabled    -> dead, no HTTP call

A message for a retrying delivery whose ``next_attempt_at`` has not passed
is a duplicate (timer and sweeper both enqueue) and is dropped.

The row is read in one transaction and written in another, so no database
transaction stays open across the HTTP call. The write is conditional on the
status and attempt count read before the call; if another worker recorded
an outcome in between, this one is discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

from dispatch_service.core.database.base import utcnow
from dispatch_service.features.webhooks.backoff import MAX_ATTEMPTS, compute_backoff_ms, should_retry
from dispatch_service.features.webhooks.events import build_delivery_updated_payload
from dispatch_service.features.webhooks.models import Endpoint
from dispatch_service.features.webhooks.repository import DeliveryRepository
from dispatch_service.features.webhooks.states import (
    ATTEMPTABLE_STATUSES,
    Dead,
    Delivered,
    DeliveryState,
    DeliveryStatus,
    Failed,
    Retrying,
    as_utc,
)
from dispatch_service.infra.database.session import session_scope
from dispatch_service.infra.events.outbox.publisher import EventPublisher
from dispatch_service.infra.logging import clear_log_context, set_log_context
from dispatch_service.infra.messaging.conventions import DELIVERY_UPDATED_EVENT

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from dispatch_service.features.webhooks.client import WebhookClient, WebhookDeliveryResult
    from dispatch_service.features.webhooks.models import Delivery
    from dispatch_service.features.webhooks.scheduler import DeliveryScheduler
    from dispatch_service.infra.database.session import SessionFactory
    from dispatch_service.infra.metrics.delivery import DeliveryMetrics

logger = logging.getLogger(__name__)

ENDPOINT_DISABLED = "Endpoint disabled"
ENDPOINT_NOT_FOUND = "Endpoint not found"


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    """Recorded result of one ``process_delivery`` call."""

    delivery_id: UUID
    state: DeliveryState
    attempts: int

    @property
    def status(self) -> str:
        return self.state.status.value


@dataclass(frozen=True, slots=True)
class _Attempt:
    """What an attempt needs from the rows, detached from the session."""

    delivery_id: UUID
    tenant_id: str
    status: str
    attempts: int
    payload: dict[str, Any]
    url: str | None
    secret: str | None
    endpoint_error: str | None


class DeliveryWorker:
    """Executes delivery attempts requested on the ``webhooks.deliver`` queue."""

    def __init__(
        self,
        session_factory: SessionFactory,
        client: WebhookClient,
        scheduler: DeliveryScheduler,
        metrics: DeliveryMetrics,
        *,
        delivery_repository: DeliveryRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._client = client
        self._scheduler = scheduler
        self._metrics = metrics
        self._deliveries = delivery_repository or DeliveryRepository()

    async def process_delivery(
        self,
        delivery_id: UUID | str,
        *,
        now: datetime | None = None,
    ) -> DeliveryOutcome | None:
        """Attempt one delivery and record the outcome.

        Args:
            delivery_id: Delivery to attempt
            now: Reference time (defaults to current UTC time)

        Returns:
            The recorded outcome, or None when the message was dropped
            (unknown id, delivery already settled, retry not yet due, or
            lost race)
        """
        try:
            delivery_uuid = UUID(str(delivery_id))
        except ValueError:
            logger.warning(
                "Malformed delivery id, message dropped",
                extra={"delivery_id": str(delivery_id), "operation": "worker.process_delivery"},
            )
            return None

        set_log_context(delivery_id=str(delivery_uuid))
        try:
            return await self._process(delivery_uuid, now or utcnow())
        finally:
            clear_log_context()

    async def _process(self, delivery_id: UUID, now: datetime) -> DeliveryOutcome | None:
        attempt = await self._load(delivery_id, now)
        if attempt is None:
            return None

        set_log_context(tenant_id=attempt.tenant_id)
        delay_ms: int | None = None

        if attempt.endpoint_error is not None:
            state: DeliveryState = Dead(last_error=attempt.endpoint_error)
            attempts = attempt.attempts
            logger.warning(
                "Delivery dead-lettered without attempt",
                extra={"reason": attempt.endpoint_error, "operation": "worker.process_delivery"},
            )
        else:
            result = await self._client.deliver(attempt.url, attempt.secret, attempt.payload)
            if result.response_time_ms is not None:
                self._metrics.observe_attempt(result.response_time_ms / 1000)
            attempts = attempt.attempts + 1
            state, delay_ms = self._classify(result, attempts, now)

        recorded = await self._record(attempt, state, attempts)
        if not recorded:
            return None

        await self._after_commit(attempt.delivery_id, state, delay_ms)

        logger.info(
            "Delivery attempt recorded",
            extra={
                "status": state.status.value,
                "attempts": attempts,
                "response_status": getattr(state, "response_status", None),
                "operation": "worker.process_delivery",
            },
        )
        return DeliveryOutcome(delivery_id=attempt.delivery_id, state=state, attempts=attempts)

    async def _load(self, delivery_id: UUID, now: datetime) -> _Attempt | None:
        async with session_scope(self._session_factory) as session:
            delivery = await self._deliveries.get(session, delivery_id)
            if delivery is None:
                logger.warning(
                    "Delivery not found, message dropped",
                    extra={"operation": "worker.process_delivery"},
                )
                return None

            if delivery.status not in ATTEMPTABLE_STATUSES:
                logger.info(
                    "Delivery already settled, duplicate message dropped",
                    extra={"status": delivery.status, "operation": "worker.process_delivery"},
                )
                return None

            next_attempt_at = as_utc(delivery.next_attempt_at)
            if delivery.status == DeliveryStatus.RETRYING and next_attempt_at is not None and next_attempt_at > now:
                logger.info(
                    "Retry not yet due, duplicate message dropped",
                    extra={
                        "next_attempt_at": next_attempt_at.isoformat(),
                        "operation": "worker.process_delivery",
                    },
                )
                return None

            endpoint = await session.get(Endpoint, delivery.endpoint_id)
            return _snapshot(delivery, endpoint)

    @staticmethod
    def _classify(
        result: WebhookDeliveryResult,
        attempts: int,
        now: datetime,
    ) -> tuple[DeliveryState, int | None]:
        """Map an HTTP result to the next state and, for retries, the delay."""
        if result.success and result.status_code is not None:
            return Delivered(response_status=result.status_code), None

        # Only a missing response counts as a transport error
        transport_error = result.error_message if result.status_code is None else None
        error = result.error_message or f"HTTP {result.status_code}"

        if should_retry(result.status_code, transport_error):
            if attempts >= MAX_ATTEMPTS:
                return Dead(last_error=error, response_status=result.status_code), None
            delay_ms = compute_backoff_ms(attempts)
            next_attempt_at = now + timedelta(milliseconds=delay_ms)
            return (
                Retrying(
                    next_attempt_at=next_attempt_at,
                    last_error=error,
                    response_status=result.status_code,
                ),
                delay_ms,
            )

        return Failed(response_status=result.status_code or 0, last_error=error), None

    async def _record(self, attempt: _Attempt, state: DeliveryState, attempts: int) -> bool:
        """Write the new state and its update event in one transaction."""
        async with session_scope(self._session_factory) as session:
            updated = await self._deliveries.transition(
                session,
                attempt.delivery_id,
                expected_status=attempt.status,
                expected_attempts=attempt.attempts,
                state=state,
                attempts=attempts,
            )
            if not updated:
                await session.rollback()
                logger.info(
                    "Delivery changed concurrently, outcome discarded",
                    extra={"status": state.status.value, "operation": "worker.process_delivery"},
                )
                return False

            await self._emit_update(session, attempt, state, attempts)
            await session.commit()
        return True

    async def _emit_update(
        self,
        session: AsyncSession,
        attempt: _Attempt,
        state: DeliveryState,
        attempts: int,
    ) -> None:
        publisher = EventPublisher(session)
        await publisher.stage(
            DELIVERY_UPDATED_EVENT,
            build_delivery_updated_payload(
                tenant_id=attempt.tenant_id,
                delivery_id=attempt.delivery_id,
                state=state,
                attempts=attempts,
            ),
            tenant_id=attempt.tenant_id,
        )

    async def _after_commit(self, delivery_id: UUID, state: DeliveryState, delay_ms: int | None) -> None:
        match state:
            case Delivered():
                self._metrics.record_success()
            case Failed():
                self._metrics.record_failure()
            case Retrying():
                self._metrics.record_retry()
                await self._scheduler.schedule(delivery_id, delay_ms or 0)
            case Dead():
                await self.refresh_dlq_depth()

    async def refresh_dlq_depth(self) -> int:
        """Set the ``dlq_depth`` gauge from the number of dead deliveries."""
        async with session_scope(self._session_factory) as session:
            depth = await self._deliveries.count_dead(session)
        self._metrics.set_dlq_depth(depth)
        return depth


def _snapshot(delivery: Delivery, endpoint: Endpoint | None) -> _Attempt:
    if endpoint is None:
        endpoint_error: str | None = ENDPOINT_NOT_FOUND
    elif not endpoint.enabled:
        endpoint_error = ENDPOINT_DISABLED
    else:
        endpoint_error = None

    return _Attempt(
        delivery_id=delivery.id,
        tenant_id=delivery.tenant_id,
        status=delivery.status,
        attempts=delivery.attempts,
        payload=dict(delivery.payload or {}),
        url=endpoint.url if endpoint is not None else None,
        secret=endpoint.secret if endpoint is not None else None,
        endpoint_error=endpoint_error,
    )


__all__ = ["ENDPOINT_DISABLED", "ENDPOINT_NOT_FOUND", "DeliveryOutcome", "DeliveryWorker"]
