"""Unit tests for the transactional outbox: staging, repository and drain."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import update

from dispatch_service.core.database.base import utcnow
from dispatch_service.infra.events.outbox import (
    EventPublisher,
    OutboxEvent,
    OutboxProcessor,
    OutboxRepository,
    OutboxStatus,
)
from dispatch_service.infra.messaging.conventions import EVENT_TYPE_HEADER, TENANT_ID_HEADER


async def _stage(session_factory, *events: tuple[str, dict]) -> list[OutboxEvent]:
    async with session_factory() as session:
        publisher = EventPublisher(session)
        staged = [await publisher.stage(event_type, payload, tenant_id="tenant-a") for event_type, payload in events]
        await session.commit()
        return staged


async def _load(session_factory, event_id) -> OutboxEvent:
    async with session_factory() as session:
        return await session.get(OutboxEvent, event_id)


@pytest.fixture
def processor(broker, session_factory, metrics) -> OutboxProcessor:
    return OutboxProcessor(
        broker=broker,
        session_factory=session_factory,
        metrics=metrics,
        batch_size=10,
        poll_interval=0.05,
    )


# ──────────────────────────────────────────────────────────────
# Test EventPublisher
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestEventPublisher:
    """Tests for staging events inside the caller's transaction."""

    @pytest.mark.asyncio
    async def test_staged_event_is_pending(self, session_factory):
        """Test that staged events are pending with zero attempts."""
        (event,) = await _stage(session_factory, ("order.created", {"orderId": "o-1"}))

        stored = await _load(session_factory, event.id)
        assert stored.status == OutboxStatus.PENDING
        assert stored.attempts == 0
        assert stored.published_at is None
        assert stored.payload == {"orderId": "o-1"}

    @pytest.mark.asyncio
    async def test_rollback_discards_event(self, session_factory):
        """Test that an event is discarded with its transaction."""
        async with session_factory() as session:
            publisher = EventPublisher(session)
            await publisher.stage("order.created", {"orderId": "o-1"}, tenant_id="tenant-a")
            assert publisher.pending_count == 1
            await session.rollback()

        async with session_factory() as session:
            assert await OutboxRepository().count_pending(session) == 0


# ──────────────────────────────────────────────────────────────
# Test OutboxProcessor
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestOutboxProcessor:
    """Tests for draining the outbox into the broker."""

    @pytest.mark.asyncio
    async def test_publishes_in_order(self, processor, broker, session_factory, metrics):
        """Test that events are published oldest first and marked published."""
        staged = await _stage(
            session_factory,
            ("order.created", {"orderId": "o-1"}),
            ("return.label_generated", {"returnId": "r-1"}),
        )

        published = await processor.drain_once()

        assert published == 2
        assert [p.queue for p in broker.published] == ["order.created", "return.label_generated"]
        first = broker.published[0]
        assert first.message["orderId"] == "o-1"
        assert first.message["tenantId"] == "tenant-a"
        assert "at" in first.message
        assert first.headers == {EVENT_TYPE_HEADER: "order.created", TENANT_ID_HEADER: "tenant-a"}
        assert first.correlation_id == str(staged[0].id)

        stored = await _load(session_factory, staged[0].id)
        assert stored.status == OutboxStatus.PUBLISHED
        assert stored.is_published
        assert stored.attempts == 1
        assert stored.published_at is not None

        assert metrics.registry.get_sample_value("events_published_total", {"type": "order.created"}) == 1.0

    @pytest.mark.asyncio
    async def test_failed_publish_stays_pending(self, processor, broker, session_factory, metrics):
        """Test that a failing publish is retried on later passes until it succeeds."""
        (event,) = await _stage(session_factory, ("order.created", {"orderId": "o-1"}))
        broker.fail_times = 3

        results = [await processor.drain_once() for _ in range(4)]

        assert results == [0, 0, 0, 1]
        stored = await _load(session_factory, event.id)
        assert stored.status == OutboxStatus.PUBLISHED
        assert stored.attempts == 4
        assert len(broker.published) == 1
        assert metrics.registry.get_sample_value("events_published_total", {"type": "order.created"}) == 1.0

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_batch(self, processor, broker, session_factory):
        """Test that the rest of the batch publishes after one failure."""
        staged = await _stage(
            session_factory,
            ("order.created", {"orderId": "o-1"}),
            ("order.created", {"orderId": "o-2"}),
        )
        broker.fail_times = 1

        assert await processor.drain_once() == 1

        first = await _load(session_factory, staged[0].id)
        second = await _load(session_factory, staged[1].id)
        assert (first.status, first.attempts) == (OutboxStatus.PENDING, 1)
        assert (second.status, second.attempts) == (OutboxStatus.PUBLISHED, 1)

    @pytest.mark.asyncio
    async def test_empty_outbox(self, processor, broker):
        """Test that an empty pass publishes nothing."""
        assert await processor.drain_once() == 0
        assert broker.published == []

    @pytest.mark.asyncio
    async def test_full_batch_runs_again_immediately(self, broker, session_factory, metrics):
        """Test that a full batch schedules the next pass without waiting."""
        processor = OutboxProcessor(
            broker=broker,
            session_factory=session_factory,
            metrics=metrics,
            batch_size=2,
            poll_interval=5.0,
        )
        await _stage(session_factory, *[("order.created", {"n": n}) for n in range(3)])

        first = await processor.drain_once()
        assert processor.next_delay(first) == 0.0

        second = await processor.drain_once()
        assert second == 1
        assert processor.next_delay(second) == 5.0

    @pytest.mark.asyncio
    async def test_background_drain(self, processor, broker, session_factory):
        """Test that the started processor drains staged events."""
        await _stage(session_factory, ("order.created", {"orderId": "o-1"}))
        await processor.start()
        for _ in range(40):
            if broker.published:
                break
            await asyncio.sleep(0.05)
        await processor.stop()

        assert len(broker.published) == 1
        assert processor.running is False


# ──────────────────────────────────────────────────────────────
# Test OutboxRepository
# ──────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestOutboxRepository:
    """Tests for outbox queries."""

    @pytest.mark.asyncio
    async def test_cleanup_only_old_published(self, session_factory, processor):
        """Test that pruning removes old published rows and keeps pending ones."""
        staged = await _stage(
            session_factory,
            ("order.created", {"n": 1}),
            ("order.created", {"n": 2}),
        )
        await processor.drain_once()
        await _stage(session_factory, ("order.created", {"n": 3}))

        async with session_factory() as session:
            await session.execute(
                update(OutboxEvent)
                .where(OutboxEvent.id == staged[0].id)
                .values(published_at=utcnow() - timedelta(days=30))
            )
            await session.commit()

        repo = OutboxRepository()
        async with session_factory() as session:
            deleted = await repo.cleanup_published(session, older_than_days=7)
            await session.commit()

        async with session_factory() as session:
            remaining = await repo.list_by_type(session, "order.created")
            pending = await repo.count_pending(session)

        assert deleted == 1
        assert len(remaining) == 2
        assert pending == 1
