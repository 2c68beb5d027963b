"""Delivery state as a tagged union.

Each variant carries exactly the fields that are meaningful in that state,
so a delivered delivery cannot hold a stale ``next_attempt_at`` and a
retrying one always knows when to run next. The delivery row stores the
union flattened into nullable columns; ``to_columns`` and ``from_columns``
convert between the two shapes.

State machine:

    pending  -> delivered | retrying | failed | dead
    retrying -> delivered | retrying | dead
    delivered | failed | dead  --replay-->  pending
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class DeliveryStatus(StrEnum):
    """Persisted status column values."""

    PENDING = "pending"
    RETRYING = "retrying"
    DELIVERED = "delivered"
    FAILED = "failed"
    DEAD = "dead"

    @property
    def is_terminal(self) -> bool:
        """Terminal until an explicit replay."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, DeliveryStatus.DEAD})
ATTEMPTABLE_STATUSES = frozenset({DeliveryStatus.PENDING, DeliveryStatus.RETRYING})


@dataclass(frozen=True, slots=True)
class Pending:
    """Waiting for its first attempt (or for a replayed one)."""

    next_attempt_at: datetime | None = None

    status = DeliveryStatus.PENDING


@dataclass(frozen=True, slots=True)
class Retrying:
    """A retryable attempt failed; the next one is due at ``next_attempt_at``."""

    next_attempt_at: datetime
    last_error: str | None = None
    response_status: int | None = None

    status = DeliveryStatus.RETRYING


@dataclass(frozen=True, slots=True)
class Delivered:
    """The endpoint answered 2xx."""

    response_status: int

    status = DeliveryStatus.DELIVERED


@dataclass(frozen=True, slots=True)
class Failed:
    """The endpoint answered with a non-retryable status."""

    response_status: int
    last_error: str | None = None

    status = DeliveryStatus.FAILED


@dataclass(frozen=True, slots=True)
class Dead:
    """Retries exhausted, or the endpoint is disabled or gone."""

    last_error: str
    response_status: int | None = None

    status = DeliveryStatus.DEAD


DeliveryState = Pending | Retrying | Delivered | Failed | Dead


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def to_columns(state: DeliveryState) -> dict[str, Any]:
    """Flatten a state into the delivery row's status columns.

    Every nullable column is always present, so writing the result clears
    whatever the previous state left behind.
    """
    columns: dict[str, Any] = {
        "status": state.status.value,
        "next_attempt_at": None,
        "last_error": None,
        "response_status": None,
    }
    match state:
        case Pending(next_attempt_at=next_at):
            columns["next_attempt_at"] = next_at
        case Retrying(next_attempt_at=next_at, last_error=error, response_status=code):
            columns.update(next_attempt_at=next_at, last_error=error, response_status=code)
        case Delivered(response_status=code):
            columns["response_status"] = code
        case Failed(response_status=code, last_error=error):
            columns.update(response_status=code, last_error=error)
        case Dead(last_error=error, response_status=code):
            columns.update(last_error=error, response_status=code)
    return columns


def from_columns(
    status: str,
    *,
    next_attempt_at: datetime | None,
    last_error: str | None,
    response_status: int | None,
) -> DeliveryState:
    """Rebuild the state variant from the row's status columns.

    Raises:
        ValueError: If ``status`` is not a known delivery status
    """
    next_at = as_utc(next_attempt_at)
    match DeliveryStatus(status):
        case DeliveryStatus.PENDING:
            return Pending(next_attempt_at=next_at)
        case DeliveryStatus.RETRYING:
            # A retrying row without a due time is due now
            return Retrying(
                next_attempt_at=next_at or datetime.now(UTC),
                last_error=last_error,
                response_status=response_status,
            )
        case DeliveryStatus.DELIVERED:
            return Delivered(response_status=response_status or 0)
        case DeliveryStatus.FAILED:
            return Failed(response_status=response_status or 0, last_error=last_error)
        case DeliveryStatus.DEAD:
            return Dead(last_error=last_error or "", response_status=response_status)


__all__ = [
    "ATTEMPTABLE_STATUSES",
    "TERMINAL_STATUSES",
    "Dead",
    "Delivered",
    "DeliveryState",
    "DeliveryStatus",
    "Failed",
    "Pending",
    "Retrying",
    "as_utc",
    "from_columns",
    "to_columns",
]
