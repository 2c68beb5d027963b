"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off real infrastructure
    - Database Fixtures: in-memory SQLite engine and session factory
    - Messaging Fixtures: a recording broker and scheduler
    - Webhook Fixtures: a scripted receiver behind ``httpx.MockTransport``
    - Data Factories: endpoints and deliveries

The in-memory database uses a ``StaticPool`` so every session opened from
the factory sees the same database, the way separate sessions see the same
PostgreSQL database in production.
"""

from __future__ import annotations

import json
import os
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from dispatch_service.core.settings import clear_all_caches
from dispatch_service.features.webhooks.client import WebhookClient
from dispatch_service.features.webhooks.models import Delivery, Endpoint
from dispatch_service.infra.database.session import create_session_factory, init_models
from dispatch_service.infra.metrics.delivery import DeliveryMetrics

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from dispatch_service.infra.database.session import SessionFactory

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_DATABASE_URL", "")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Drop cached settings so monkeypatched env vars take effect."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> SessionFactory:
    """Session factory shared by the code under test and assertions."""
    return create_session_factory(db_engine)


# ============================================================================
# Messaging Fixtures
# ============================================================================


@dataclass
class PublishedMessage:
    """One message accepted by ``RecordingBroker``."""

    message: Any
    queue: str
    headers: dict[str, Any] | None = None
    correlation_id: str | None = None


@dataclass
class RecordingBroker:
    """Stand-in for ``RabbitBroker`` that records publishes in memory.

    ``fail_times`` makes the next N publishes raise ``ConnectionError``.
    """

    fail_times: int = 0
    published: list[PublishedMessage] = field(default_factory=list)
    subscribers: dict[str, Callable[..., Any]] = field(default_factory=dict)
    running: bool = False

    async def publish(
        self,
        message: Any = None,
        queue: str = "",
        *,
        headers: dict[str, Any] | None = None,
        correlation_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ConnectionError("broker unavailable")
        self.published.append(
            PublishedMessage(message=message, queue=queue, headers=headers, correlation_id=correlation_id)
        )

    def subscriber(self, queue: str, **kwargs: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.subscribers[queue] = func
            return func

        return decorator

    async def start(self) -> None:
        self.running = True

    async def close(self) -> None:
        self.running = False

    def messages_for(self, queue: str) -> list[Any]:
        return [p.message for p in self.published if p.queue == queue]


@dataclass
class RecordingScheduler:
    """Stand-in for ``DeliveryScheduler`` that records schedule calls."""

    calls: list[tuple[str, int]] = field(default_factory=list)

    async def schedule(self, delivery_id: Any, delay_ms: int) -> None:
        self.calls.append((str(delivery_id), delay_ms))


@pytest.fixture
def broker() -> RecordingBroker:
    return RecordingBroker()


@pytest.fixture
def recording_scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def metrics() -> DeliveryMetrics:
    """Fresh metrics registry per test."""
    return DeliveryMetrics()


# ============================================================================
# Webhook Fixtures
# ============================================================================


@dataclass
class FakeReceiver:
    """Scripted webhook receiver.

    ``statuses`` are returned in order (the last one repeats);
    ``raise_error`` makes every request fail at the transport level.
    """

    statuses: list[int] = field(default_factory=lambda: [200])
    raise_error: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error
        index = min(len(self.requests) - 1, len(self.statuses) - 1)
        return httpx.Response(self.statuses[index], text="ok")

    @property
    def bodies(self) -> list[Any]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def receiver() -> FakeReceiver:
    return FakeReceiver()


@pytest.fixture
async def webhook_client(receiver: FakeReceiver) -> AsyncGenerator[WebhookClient]:
    """Webhook client whose requests land on ``receiver``."""
    client = WebhookClient(transport=httpx.MockTransport(receiver.handler))
    try:
        yield client
    finally:
        await client.aclose()


# ============================================================================
# Data Factories
# ============================================================================


@pytest.fixture
def make_endpoint(session_factory: SessionFactory):
    """Factory persisting an endpoint.

    Example:
        endpoint = await make_endpoint(enabled=False)
    """

    async def _make(
        *,
        tenant_id: str = TENANT,
        url: str = "https://receiver.example.com/hooks",
        secret: str = "test_secret",
        enabled: bool = True,
    ) -> Endpoint:
        async with session_factory() as session:
            endpoint = Endpoint(tenant_id=tenant_id, url=url, secret=secret, enabled=enabled)
            session.add(endpoint)
            await session.commit()
            return endpoint

    return _make


@pytest.fixture
def make_delivery(session_factory: SessionFactory):
    """Factory persisting a delivery for an endpoint.

    Example:
        delivery = await make_delivery(endpoint, status="dead", attempts=5)
    """

    async def _make(
        endpoint: Endpoint,
        *,
        event_type: str = "order.created",
        payload: dict[str, Any] | None = None,
        status: str = "pending",
        attempts: int = 0,
        **columns: Any,
    ) -> Delivery:
        async with session_factory() as session:
            delivery = Delivery(
                tenant_id=endpoint.tenant_id,
                endpoint_id=endpoint.id,
                event_type=event_type,
                payload=payload if payload is not None else {"orderId": "o-1", "tenantId": endpoint.tenant_id},
                status=status,
                attempts=attempts,
                **columns,
            )
            session.add(delivery)
            await session.commit()
            return delivery

    return _make


@pytest.fixture
def load_delivery(session_factory: SessionFactory):
    """Re-read a delivery in a fresh session."""

    async def _load(delivery_id: Any) -> Delivery | None:
        async with session_factory() as session:
            return await session.get(Delivery, delivery_id)

    return _load
