"""Composition root for the delivery engine.

``DispatchRuntime.build`` wires every component from settings; anything it
would create (broker, session factory, HTTP client, metrics) can be passed
in instead, which is how the tests run the whole pipeline against SQLite,
a fake broker and an ``httpx.MockTransport``.

Start order: broker, timer scheduler, sweeper, outbox processor.
Stop order is the reverse, then the HTTP client and owned engine are closed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from dispatch_service.core.settings import get_settings
from dispatch_service.features.webhooks.client import WebhookClient
from dispatch_service.features.webhooks.dispatcher import DeliveryCreator
from dispatch_service.features.webhooks.scheduler import DeliveryScheduler
from dispatch_service.features.webhooks.service import WebhookService
from dispatch_service.features.webhooks.subscribers import register_subscribers
from dispatch_service.features.webhooks.sweeper import DueRetrySweeper
from dispatch_service.features.webhooks.worker import DeliveryWorker
from dispatch_service.infra.database.session import (
    create_engine_from_settings,
    create_session_factory,
)
from dispatch_service.infra.events.outbox.processor import OutboxProcessor
from dispatch_service.infra.messaging.broker import create_broker, start_broker, stop_broker
from dispatch_service.infra.metrics.delivery import DeliveryMetrics

if TYPE_CHECKING:
    from uuid import UUID

    import httpx
    from faststream.rabbit import RabbitBroker
    from sqlalchemy.ext.asyncio import AsyncEngine

    from dispatch_service.core.settings import Settings
    from dispatch_service.infra.database.session import SessionFactory

logger = logging.getLogger(__name__)


@dataclass
class DispatchRuntime:
    """Every long-lived component of one dispatch-service process."""

    settings: Settings
    broker: RabbitBroker
    session_factory: SessionFactory
    metrics: DeliveryMetrics
    client: WebhookClient
    scheduler: DeliveryScheduler
    creator: DeliveryCreator
    worker: DeliveryWorker
    outbox_processor: OutboxProcessor
    sweeper: DueRetrySweeper
    engine: AsyncEngine | None = None
    subscribed_queues: list[str] = field(default_factory=list)
    _started: bool = field(default=False, init=False, repr=False)
    _background: bool = field(default=False, init=False, repr=False)

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        *,
        broker: RabbitBroker | None = None,
        session_factory: SessionFactory | None = None,
        http_client: httpx.AsyncClient | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
        metrics: DeliveryMetrics | None = None,
        consume: bool = True,
    ) -> DispatchRuntime:
        """Compose the runtime.

        Args:
            settings: Unified settings (defaults to ``get_settings()``)
            broker: Broker to use instead of one built from the RabbitMQ settings
            session_factory: Session factory to use instead of one built from
                the database settings
            http_client: Shared HTTP client for webhook requests
            http_transport: Transport for the webhook client (tests)
            metrics: Metrics object (defaults to a fresh registry)
            consume: Register the queue subscribers; one-shot commands that
                only publish pass False

        Raises:
            ValueError: If the database or RabbitMQ settings are needed but
                not configured
        """
        settings = settings or get_settings()

        engine: AsyncEngine | None = None
        if session_factory is None:
            engine = create_engine_from_settings(settings.db)
            session_factory = create_session_factory(engine)

        if broker is None:
            broker = create_broker(settings.rabbit)

        metrics = metrics or DeliveryMetrics()
        client = WebhookClient(
            user_agent=settings.webhooks.user_agent,
            http_client=http_client,
            transport=http_transport,
        )
        scheduler = DeliveryScheduler(broker)
        creator = DeliveryCreator(session_factory, scheduler)
        worker = DeliveryWorker(session_factory, client, scheduler, metrics)
        outbox_processor = OutboxProcessor(
            broker=broker,
            session_factory=session_factory,
            metrics=metrics,
            batch_size=settings.outbox.batch_size,
            poll_interval=settings.outbox.poll_interval_seconds,
        )
        sweeper = DueRetrySweeper(
            session_factory=session_factory,
            scheduler=scheduler,
            metrics=metrics,
            batch_size=settings.webhooks.sweep_batch_size,
            interval=settings.webhooks.sweep_interval_seconds,
        )

        queues: list[str] = []
        if consume:
            queues = register_subscribers(
                broker, creator, worker, settings.webhooks.subscribed_event_types
            )

        return cls(
            settings=settings,
            broker=broker,
            session_factory=session_factory,
            metrics=metrics,
            client=client,
            scheduler=scheduler,
            creator=creator,
            worker=worker,
            outbox_processor=outbox_processor,
            sweeper=sweeper,
            engine=engine,
            subscribed_queues=queues,
        )

    @property
    def started(self) -> bool:
        return self._started

    async def start(self, *, background: bool = True) -> None:
        """Connect the broker and, with ``background``, start the loops.

        Args:
            background: Start the timer scheduler, sweeper and outbox
                processor; one-shot commands only need the broker
        """
        if self._started:
            return

        await start_broker(self.broker, connection_timeout=self.settings.rabbit.connection_timeout)

        if background:
            self.scheduler.start()
            if self.settings.webhooks.sweeper_enabled:
                await self.sweeper.start()
            if self.settings.outbox.enabled:
                await self.outbox_processor.start()

        self._started = True
        self._background = background
        logger.info(
            "Dispatch runtime started",
            extra={
                "background": background,
                "queues": self.subscribed_queues,
                "operation": "runtime.start",
            },
        )

    async def stop(self) -> None:
        """Stop everything started by ``start`` and release owned resources."""
        if self._background:
            await self.outbox_processor.stop()
            await self.sweeper.stop()
            self.scheduler.stop()

        if self._started:
            await stop_broker(self.broker)

        await self.client.aclose()
        if self.engine is not None:
            await self.engine.dispose()

        self._started = False
        self._background = False
        logger.info("Dispatch runtime stopped", extra={"operation": "runtime.stop"})

    async def replay(self, tenant_id: str, delivery_id: UUID) -> None:
        """Replay one delivery outside the HTTP surface (CLI)."""
        async with self.session_factory() as session:
            service = WebhookService(session, scheduler=self.scheduler)
            await service.replay_delivery(tenant_id, delivery_id)


__all__ = ["DispatchRuntime"]
