"""Unit tests for DeliveryScheduler."""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from dispatch_service.features.webhooks.scheduler import DeliveryScheduler, timer_job_id
from dispatch_service.infra.messaging.conventions import DELIVER_QUEUE


@pytest.fixture
async def scheduler(broker):
    delivery_scheduler = DeliveryScheduler(broker)
    delivery_scheduler.start()
    try:
        yield delivery_scheduler
    finally:
        delivery_scheduler.stop()


@pytest.mark.unit
class TestDeliveryScheduler:
    """Tests for immediate and delayed attempt requests."""

    def test_timer_job_id(self):
        """Timer ids are derived from the delivery id."""
        delivery_id = uuid4()

        assert timer_job_id(delivery_id) == f"deliver-{delivery_id}"

    @pytest.mark.asyncio
    async def test_zero_delay_publishes_now(self, scheduler, broker):
        """Test that a zero delay publishes the attempt message immediately."""
        delivery_id = uuid4()

        await scheduler.schedule(delivery_id, 0)

        assert broker.messages_for(DELIVER_QUEUE) == [{"deliveryId": str(delivery_id)}]
        assert scheduler.armed_timers == 0

    @pytest.mark.asyncio
    async def test_delay_arms_timer(self, scheduler, broker):
        """Test that a positive delay arms a timer instead of publishing."""
        await scheduler.schedule(uuid4(), 60_000)

        assert broker.published == []
        assert scheduler.armed_timers == 1

    @pytest.mark.asyncio
    async def test_rescheduling_replaces_timer(self, scheduler):
        """Test that a delivery has at most one armed timer."""
        delivery_id = uuid4()

        await scheduler.schedule(delivery_id, 60_000)
        await scheduler.schedule(delivery_id, 30_000)

        assert scheduler.armed_timers == 1

    @pytest.mark.asyncio
    async def test_timer_fires(self, scheduler, broker):
        """Test that an armed timer publishes when it comes due."""
        delivery_id = uuid4()

        await scheduler.schedule(delivery_id, 50)
        for _ in range(40):
            if broker.published:
                break
            await asyncio.sleep(0.05)

        assert broker.messages_for(DELIVER_QUEUE) == [{"deliveryId": str(delivery_id)}]
        assert scheduler.armed_timers == 0

    @pytest.mark.asyncio
    async def test_publish_failure_is_swallowed(self, scheduler, broker):
        """Test that a broker failure is reported, not raised."""
        broker.fail_times = 1

        accepted = await scheduler.publish_attempt(uuid4())
        await scheduler.schedule(uuid4(), 0)

        assert accepted is False
        assert len(broker.published) == 1

    @pytest.mark.asyncio
    async def test_start_stop(self, broker):
        """Test the running flag across start and stop."""
        delivery_scheduler = DeliveryScheduler(broker)

        assert delivery_scheduler.running is False
        delivery_scheduler.start()
        assert delivery_scheduler.running is True
        delivery_scheduler.stop()
        assert delivery_scheduler.running is False
