"""OutboxEvent SQLAlchemy model for the transactional outbox pattern.

Domain services insert a row here in the same transaction as their state
change, so either both commit or neither does. The drain worker later
publishes each pending row to the broker and flips it to ``published``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from dispatch_service.core.database.base import (
    Base,
    JSONType,
    TenantMixin,
    UUIDPKMixin,
    utcnow,
)


class OutboxStatus(StrEnum):
    """Lifecycle of an outbox row. There is no terminal failure state."""

    PENDING = "pending"
    PUBLISHED = "published"


class OutboxEvent(Base, UUIDPKMixin, TenantMixin):
    """Outbox row staged for publication to the broker.

    Attributes:
        id: UUID primary key, also sent as the AMQP correlation id
        tenant_id: Tenant that owns the event
        type: Event type; doubles as the destination queue name
        payload: Event body (JSON object)
        status: pending until a publish succeeds, then published
        attempts: Publish attempts made, successful or not
        created_at: Staging time; the drain is FIFO on this column
        published_at: When the publish succeeded
    """

    __tablename__ = "event_outbox"

    type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        comment="Event type identifier (also the destination queue)",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Event body",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OutboxStatus.PENDING.value,
        comment="pending or published",
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Publish attempts made",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        comment="Timestamp the event was staged",
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the event was successfully published",
    )

    __table_args__ = (
        # Drain query: pending rows, oldest first
        Index("ix_event_outbox_status_created", "status", "created_at"),
    )

    @property
    def is_published(self) -> bool:
        """Check if event has been successfully published."""
        return self.status == OutboxStatus.PUBLISHED

    def __repr__(self) -> str:
        """Human-readable representation."""
        return (
            f"OutboxEvent("
            f"id={self.id}, "
            f"type={self.type!r}, "
            f"status={self.status}, "
            f"attempts={self.attempts}"
            f")"
        )


__all__ = ["OutboxEvent", "OutboxStatus"]
