"""Unit tests for DispatchRuntime wiring and the full delivery pipeline.

The pipeline test drives the registered broker handlers by hand:

    domain event -> deliveries -> attempt messages -> signed POSTs
    -> delivery_updated events in the outbox -> drained to the broker
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest

from dispatch_service.core.settings import OutboxSettings, Settings, WebhookSettings
from dispatch_service.features.webhooks.signing import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_signature
from dispatch_service.features.webhooks.subscribers import make_delivery_handler
from dispatch_service.infra.messaging.conventions import DELIVER_QUEUE, DELIVERY_UPDATED_EVENT
from dispatch_service.runtime import DispatchRuntime

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
else:  # pragma: no cover - runtime placeholder for typing-only import
    AsyncGenerator = Any


@pytest.fixture
async def runtime(session_factory, broker, receiver, metrics) -> AsyncGenerator[DispatchRuntime]:
    dispatch_runtime = DispatchRuntime.build(
        Settings(
            outbox=OutboxSettings(enabled=False),
            webhooks=WebhookSettings(sweeper_enabled=False),
        ),
        broker=broker,
        session_factory=session_factory,
        http_transport=httpx.MockTransport(receiver.handler),
        metrics=metrics,
    )
    try:
        yield dispatch_runtime
    finally:
        await dispatch_runtime.stop()


@pytest.mark.unit
class TestRuntimeWiring:
    """Tests for subscriber registration and lifecycle."""

    def test_subscribers_registered(self, runtime, broker):
        """Test that every subscribed event type and the attempt queue have handlers."""
        assert runtime.subscribed_queues == ["order.created", "return.label_generated", DELIVER_QUEUE]
        assert set(broker.subscribers) == set(runtime.subscribed_queues)

    def test_publish_only_runtime_registers_nothing(self, session_factory, broker, metrics):
        """Test that consume=False leaves the broker without subscribers."""
        dispatch_runtime = DispatchRuntime.build(
            broker=broker, session_factory=session_factory, metrics=metrics, consume=False
        )

        assert dispatch_runtime.subscribed_queues == []
        assert broker.subscribers == {}

    @pytest.mark.asyncio
    async def test_start_and_stop(self, runtime, broker):
        """Test that start connects the broker and timers and stop reverses it."""
        await runtime.start()

        assert runtime.started is True
        assert broker.running is True
        assert runtime.scheduler.running is True

        await runtime.stop()

        assert runtime.started is False
        assert broker.running is False
        assert runtime.scheduler.running is False

    @pytest.mark.asyncio
    async def test_one_shot_start_skips_background(self, runtime, broker):
        """Test that background=False only connects the broker."""
        await runtime.start(background=False)

        assert broker.running is True
        assert runtime.scheduler.running is False


@pytest.mark.unit
class TestDeliveryPipeline:
    """End-to-end flow through the registered handlers."""

    @pytest.mark.asyncio
    async def test_event_to_delivered(self, runtime, broker, receiver, metrics, make_endpoint, load_delivery):
        """Test that a domain event is delivered, signed, to every enabled endpoint."""
        first = await make_endpoint(url="https://one.example.com/hook", secret="secret-one")
        second = await make_endpoint(url="https://two.example.com/hook", secret="secret-two")
        await make_endpoint(url="https://off.example.com/hook", enabled=False)
        event = {"orderId": "o-1", "tenantId": "tenant-a", "at": "2024-03-09T16:00:00+00:00"}

        await broker.subscribers["order.created"](event)

        attempts = broker.messages_for(DELIVER_QUEUE)
        assert len(attempts) == 2
        for message in attempts:
            await broker.subscribers[DELIVER_QUEUE](message)

        secrets = {str(first.url): first.secret, str(second.url): second.secret}
        assert {str(r.url) for r in receiver.requests} == set(secrets)
        for request in receiver.requests:
            body = request.content.decode("utf-8")
            assert verify_signature(
                secrets[str(request.url)],
                request.headers[TIMESTAMP_HEADER],
                body,
                request.headers[SIGNATURE_HEADER],
            )
        assert receiver.bodies == [event, event]

        for message in attempts:
            stored = await load_delivery(message["deliveryId"])
            assert stored.status == "delivered"
            assert stored.attempts == 1

        assert await runtime.outbox_processor.drain_once() == 2
        updates = broker.messages_for(DELIVERY_UPDATED_EVENT)
        assert {u["status"] for u in updates} == {"delivered"}
        assert metrics.registry.get_sample_value(
            "events_published_total", {"type": DELIVERY_UPDATED_EVENT}
        ) == 2.0
        assert metrics.registry.get_sample_value("webhook_success_rate") == 1.0

    @pytest.mark.asyncio
    async def test_duplicate_attempt_message_ignored(self, runtime, broker, receiver, make_endpoint):
        """Test that a redelivered attempt message does not POST twice."""
        await make_endpoint()
        await broker.subscribers["order.created"]({"tenantId": "tenant-a"})
        (message,) = broker.messages_for(DELIVER_QUEUE)

        await broker.subscribers[DELIVER_QUEUE](message)
        await broker.subscribers[DELIVER_QUEUE](message)

        assert len(receiver.requests) == 1

    @pytest.mark.asyncio
    async def test_attempt_message_without_id(self, runtime, receiver):
        """Test that an attempt message without deliveryId is dropped."""
        handler = make_delivery_handler(runtime.worker)

        await handler({})

        assert receiver.requests == []

    @pytest.mark.asyncio
    async def test_runtime_replay(self, runtime, broker, make_endpoint, make_delivery, load_delivery):
        """Test replay through the runtime used by the CLI."""
        endpoint = await make_endpoint()
        delivery = await make_delivery(endpoint, status="dead", attempts=5, last_error="HTTP 500")

        await runtime.replay("tenant-a", delivery.id)

        assert (await load_delivery(delivery.id)).status == "pending"
        assert broker.messages_for(DELIVER_QUEUE) == [{"deliveryId": str(delivery.id)}]
