"""SQLAlchemy models for the webhooks feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dispatch_service.core.database import (
    Base,
    JSONType,
    TenantMixin,
    TimestampMixin,
    UUIDPKMixin,
)
from dispatch_service.features.webhooks.states import (
    DeliveryState,
    DeliveryStatus,
    from_columns,
    to_columns,
)


class Endpoint(Base, UUIDPKMixin, TimestampMixin, TenantMixin):
    """Webhook endpoint registered by a tenant.

    Every enabled endpoint of a tenant receives one delivery per subscribed
    event. Disabling an endpoint dead-letters its outstanding deliveries on
    their next attempt instead of calling it.
    """

    __tablename__ = "webhook_endpoints"

    url: Mapped[str] = mapped_column(
        String(2048), nullable=False, comment="Target URL for webhook delivery"
    )
    secret: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="HMAC secret for signing payloads"
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean(), default=True, nullable=False, comment="Whether the endpoint receives deliveries"
    )

    deliveries: Mapped[list[Delivery]] = relationship(
        "Delivery",
        back_populates="endpoint",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )

    def __repr__(self) -> str:
        """Human-readable representation (never includes the secret)."""
        return f"Endpoint(id={self.id}, tenant_id={self.tenant_id!r}, url={self.url!r}, enabled={self.enabled})"


class Delivery(Base, UUIDPKMixin, TimestampMixin, TenantMixin):
    """One event bound for one endpoint.

    The status columns are the persisted form of ``DeliveryState``; read
    them through ``state`` and write them through ``apply_state``.
    """

    __tablename__ = "webhook_deliveries"

    endpoint_id: Mapped[UUID] = mapped_column(
        ForeignKey("webhook_endpoints.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Endpoint this delivery targets",
    )
    event_type: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True, comment="Type of event being delivered"
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, comment="Event body sent as the request body"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DeliveryStatus.PENDING.value,
        index=True,
        comment="Delivery status: pending, retrying, delivered, failed, dead",
    )
    attempts: Mapped[int] = mapped_column(
        Integer(), default=0, nullable=False, comment="HTTP attempts made since creation or replay"
    )
    response_status: Mapped[int | None] = mapped_column(
        Integer(), nullable=True, comment="HTTP status of the last attempt"
    )
    last_error: Mapped[str | None] = mapped_column(
        Text(), nullable=True, comment="Error of the last failed attempt"
    )
    next_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the next attempt is due",
    )

    endpoint: Mapped[Endpoint] = relationship("Endpoint", back_populates="deliveries", lazy="select")

    __table_args__ = (
        # Sweeper query: pending rows and due retrying rows, oldest first
        Index("ix_webhook_deliveries_status_next_attempt", "status", "next_attempt_at"),
    )

    @property
    def state(self) -> DeliveryState:
        """The current state variant."""
        return from_columns(
            self.status,
            next_attempt_at=self.next_attempt_at,
            last_error=self.last_error,
            response_status=self.response_status,
        )

    def apply_state(self, state: DeliveryState) -> None:
        """Write a state variant onto the status columns."""
        for column, value in to_columns(state).items():
            setattr(self, column, value)

    @property
    def is_terminal(self) -> bool:
        """Whether attempts stop until replay."""
        return DeliveryStatus(self.status).is_terminal

    def __repr__(self) -> str:
        """Human-readable representation."""
        return (
            f"Delivery("
            f"id={self.id}, "
            f"event_type={self.event_type!r}, "
            f"status={self.status}, "
            f"attempts={self.attempts}"
            f")"
        )


__all__ = ["Delivery", "Endpoint"]
