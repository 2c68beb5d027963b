"""Unit tests for the delivery state union and its column mapping."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from dispatch_service.features.webhooks.states import (
    Dead,
    Delivered,
    DeliveryStatus,
    Failed,
    Pending,
    Retrying,
    as_utc,
    from_columns,
    to_columns,
)

NEXT_AT = datetime(2024, 3, 9, 16, 0, tzinfo=UTC)


@pytest.mark.unit
class TestDeliveryStatus:
    """Tests for status classification."""

    @pytest.mark.parametrize(
        ("status", "terminal"),
        [
            (DeliveryStatus.PENDING, False),
            (DeliveryStatus.RETRYING, False),
            (DeliveryStatus.DELIVERED, True),
            (DeliveryStatus.FAILED, True),
            (DeliveryStatus.DEAD, True),
        ],
    )
    def test_is_terminal(self, status: DeliveryStatus, terminal: bool):
        """Delivered, failed and dead are terminal."""
        assert status.is_terminal is terminal


@pytest.mark.unit
class TestToColumns:
    """Tests for flattening states into row columns."""

    def test_delivered_clears_retry_fields(self):
        """Delivered keeps only the response status."""
        assert to_columns(Delivered(response_status=200)) == {
            "status": "delivered",
            "next_attempt_at": None,
            "last_error": None,
            "response_status": 200,
        }

    def test_retrying_keeps_due_time_and_error(self):
        """Retrying carries when and why."""
        columns = to_columns(Retrying(next_attempt_at=NEXT_AT, last_error="HTTP 503", response_status=503))

        assert columns == {
            "status": "retrying",
            "next_attempt_at": NEXT_AT,
            "last_error": "HTTP 503",
            "response_status": 503,
        }

    def test_pending_without_due_time(self):
        """A fresh pending delivery has no error fields."""
        assert to_columns(Pending()) == {
            "status": "pending",
            "next_attempt_at": None,
            "last_error": None,
            "response_status": None,
        }

    def test_dead_without_response(self):
        """A disabled-endpoint dead-letter has an error and no status."""
        columns = to_columns(Dead(last_error="Endpoint disabled"))

        assert columns["status"] == "dead"
        assert columns["last_error"] == "Endpoint disabled"
        assert columns["response_status"] is None

    def test_failed(self):
        """Failed keeps status and error."""
        columns = to_columns(Failed(response_status=404, last_error="HTTP 404"))

        assert columns["status"] == "failed"
        assert columns["response_status"] == 404
        assert columns["next_attempt_at"] is None


@pytest.mark.unit
class TestFromColumns:
    """Tests for rebuilding states from row columns."""

    def test_naive_datetime_becomes_utc(self):
        """Naive timestamps read back from SQLite are treated as UTC."""
        state = from_columns(
            "retrying",
            next_attempt_at=datetime(2024, 3, 9, 16, 0),
            last_error="HTTP 500",
            response_status=500,
        )

        assert state == Retrying(next_attempt_at=NEXT_AT, last_error="HTTP 500", response_status=500)

    def test_retrying_without_due_time_is_due_now(self):
        """A retrying row missing next_attempt_at is due immediately."""
        before = datetime.now(UTC)
        state = from_columns("retrying", next_attempt_at=None, last_error=None, response_status=None)

        assert isinstance(state, Retrying)
        assert state.next_attempt_at >= before

    @pytest.mark.parametrize(
        "state",
        [
            Pending(),
            Delivered(response_status=204),
            Failed(response_status=410, last_error="HTTP 410"),
            Dead(last_error="HTTP 500", response_status=500),
        ],
    )
    def test_columns_rebuild_same_state(self, state):
        """Flattening then rebuilding yields the same variant."""
        assert from_columns(**to_columns(state)) == state

    def test_unknown_status_rejected(self):
        """Unknown status strings raise ValueError."""
        with pytest.raises(ValueError):
            from_columns("sent", next_attempt_at=None, last_error=None, response_status=None)


@pytest.mark.unit
class TestAsUtc:
    """Tests for timezone normalization."""

    def test_none_passthrough(self):
        assert as_utc(None) is None

    def test_aware_unchanged(self):
        assert as_utc(NEXT_AT) is NEXT_AT
