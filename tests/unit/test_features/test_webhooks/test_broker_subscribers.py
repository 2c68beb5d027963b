"""Subscriber wiring tests against FastStream's in-memory Rabbit broker."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from faststream.rabbit.testing import TestRabbitBroker
import pytest

from dispatch_service.core.settings.rabbit import RabbitSettings
from dispatch_service.features.webhooks.subscribers import register_subscribers
from dispatch_service.infra.messaging.broker import check_broker_health, create_broker
from dispatch_service.infra.messaging.conventions import DELIVER_QUEUE


@pytest.fixture
def rabbit_broker():
    return create_broker(RabbitSettings(enabled=True, host="localhost"))


@pytest.fixture
def creator() -> MagicMock:
    mock = MagicMock()
    mock.create_deliveries_for_event = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def worker() -> MagicMock:
    mock = MagicMock()
    mock.process_delivery = AsyncMock(return_value=None)
    return mock


@pytest.mark.unit
class TestRegisterSubscribers:
    """Messages published to each queue reach the right component."""

    @pytest.mark.asyncio
    async def test_domain_event_reaches_creator(self, rabbit_broker, creator, worker):
        queues = register_subscribers(rabbit_broker, creator, worker, ["order.created"])

        assert queues == ["order.created", DELIVER_QUEUE]
        async with TestRabbitBroker(rabbit_broker) as test_broker:
            await test_broker.publish({"tenantId": "tenant-a", "orderId": "o-1"}, queue="order.created")

        creator.create_deliveries_for_event.assert_awaited_once_with(
            "order.created", {"tenantId": "tenant-a", "orderId": "o-1"}
        )
        worker.process_delivery.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attempt_message_reaches_worker(self, rabbit_broker, creator, worker):
        register_subscribers(rabbit_broker, creator, worker, ["order.created"])

        async with TestRabbitBroker(rabbit_broker) as test_broker:
            await test_broker.publish({"deliveryId": "d-1"}, queue=DELIVER_QUEUE)

        worker.process_delivery.assert_awaited_once_with("d-1")
        creator.create_deliveries_for_event.assert_not_awaited()


@pytest.mark.unit
class TestBrokerHealth:
    """Tests for check_broker_health."""

    @pytest.mark.asyncio
    async def test_not_configured(self):
        health = await check_broker_health(None)

        assert health["status"] == "unavailable"
        assert health["reason"] == "broker_not_configured"

    @pytest.mark.asyncio
    async def test_not_running(self, rabbit_broker):
        health = await check_broker_health(rabbit_broker)

        assert health["status"] == "unhealthy"
        assert health["is_connected"] is False
