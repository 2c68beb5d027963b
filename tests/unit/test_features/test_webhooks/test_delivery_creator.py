"""Unit tests for DeliveryCreator fan-out."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from dispatch_service.features.webhooks.dispatcher import DeliveryCreator
from dispatch_service.features.webhooks.models import Delivery


@pytest.fixture
def creator(session_factory, recording_scheduler) -> DeliveryCreator:
    return DeliveryCreator(session_factory, recording_scheduler)


async def _all_deliveries(session_factory) -> list[Delivery]:
    async with session_factory() as session:
        result = await session.execute(select(Delivery))
        return list(result.scalars().all())


@pytest.mark.unit
class TestCreateDeliveriesForEvent:
    """Tests for DeliveryCreator.create_deliveries_for_event."""

    @pytest.mark.asyncio
    async def test_one_delivery_per_enabled_endpoint(
        self, creator, make_endpoint, recording_scheduler, session_factory
    ):
        """Test that only the tenant's enabled endpoints receive the event."""
        enabled = [await make_endpoint(url=f"https://r{i}.example.com/hook") for i in range(3)]
        await make_endpoint(enabled=False)
        await make_endpoint(tenant_id="tenant-b")
        message = {"orderId": "o-42", "tenantId": "tenant-a", "at": "2024-03-09T16:00:00+00:00"}

        created = await creator.create_deliveries_for_event("order.created", message)

        assert len(created) == 3
        assert {d.endpoint_id for d in created} == {e.id for e in enabled}

        stored = await _all_deliveries(session_factory)
        assert len(stored) == 3
        for delivery in stored:
            assert delivery.status == "pending"
            assert delivery.attempts == 0
            assert delivery.event_type == "order.created"
            assert delivery.payload == message
            assert delivery.tenant_id == "tenant-a"

        assert sorted(call[0] for call in recording_scheduler.calls) == sorted(str(d.id) for d in created)
        assert all(delay == 0 for _, delay in recording_scheduler.calls)

    @pytest.mark.asyncio
    async def test_missing_tenant_dropped(self, creator, make_endpoint, recording_scheduler, session_factory):
        """Test that events without tenantId create nothing."""
        await make_endpoint()

        created = await creator.create_deliveries_for_event("order.created", {"orderId": "o-1"})

        assert created == []
        assert await _all_deliveries(session_factory) == []
        assert recording_scheduler.calls == []

    @pytest.mark.asyncio
    async def test_no_enabled_endpoints(self, creator, make_endpoint, recording_scheduler):
        """Test that a tenant with only disabled endpoints gets no deliveries."""
        await make_endpoint(enabled=False)

        created = await creator.create_deliveries_for_event("order.created", {"tenantId": "tenant-a"})

        assert created == []
        assert recording_scheduler.calls == []

    @pytest.mark.asyncio
    async def test_later_endpoints_not_backfilled(self, creator, make_endpoint, session_factory):
        """Test that endpoints registered after fan-out do not receive the event."""
        await make_endpoint()
        await creator.create_deliveries_for_event("return.label_generated", {"tenantId": "tenant-a"})
        await make_endpoint(url="https://late.example.com/hook")

        stored = await _all_deliveries(session_factory)

        assert len(stored) == 1
