"""Unit tests for structured logging helpers."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from uuid import UUID

import pytest

from dispatch_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    set_log_context,
)


def _record(msg: str = "Delivery attempt recorded", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="dispatch_service.features.webhooks.worker",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.mark.unit
class TestJSONFormatter:
    """Tests for the JSON Lines formatter."""

    def test_single_line_json(self):
        """Records are rendered as one JSON object."""
        output = JSONFormatter().format(_record(operation="worker.process_delivery"))

        data = json.loads(output)
        assert "\n" not in output
        assert data["level"] == "INFO"
        assert data["logger"] == "dispatch_service.features.webhooks.worker"
        assert data["message"] == "Delivery attempt recorded"
        assert data["operation"] == "worker.process_delivery"
        assert data["timestamp"].endswith("Z")

    def test_static_fields(self):
        """Static fields appear on every record."""
        output = JSONFormatter(static={"service": "dispatch-service"}).format(_record())

        assert json.loads(output)["service"] == "dispatch-service"

    def test_non_json_values_stringified(self):
        """UUIDs and similar values are rendered as strings."""
        delivery_id = UUID("7f1c2d3e-0000-4000-8000-000000000001")

        output = JSONFormatter().format(_record(delivery_id=delivery_id))

        assert json.loads(output)["delivery_id"] == str(delivery_id)

    def test_exception_on_one_line(self):
        """Tracebacks are escaped onto the same line."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        output = JSONFormatter().format(record)

        assert "\n" not in output
        assert "RuntimeError: boom" in json.loads(output)["exception"]


@pytest.mark.unit
class TestLogContext:
    """Tests for contextvars-based log context."""

    def test_filter_injects_context(self):
        """Context fields are copied onto records."""
        set_log_context(delivery_id="d-1", tenant_id="tenant-a")
        record = _record()

        ContextInjectingFilter().filter(record)

        assert record.delivery_id == "d-1"
        assert record.tenant_id == "tenant-a"

    def test_extra_wins_over_context(self):
        """Fields passed with extra= are not overwritten."""
        set_log_context(operation="from-context")
        record = _record(operation="from-extra")

        ContextInjectingFilter().filter(record)

        assert record.operation == "from-extra"

    def test_clear(self):
        set_log_context(delivery_id="d-1")
        clear_log_context()

        assert get_log_context() == {}

    @pytest.mark.asyncio
    async def test_tasks_are_isolated(self):
        """Concurrent tasks do not see each other's context."""
        seen: dict[str, dict] = {}

        async def handler(name: str) -> None:
            set_log_context(delivery_id=name)
            await asyncio.sleep(0)
            seen[name] = get_log_context()

        await asyncio.gather(handler("a"), handler("b"))

        assert seen == {"a": {"delivery_id": "a"}, "b": {"delivery_id": "b"}}


@pytest.mark.unit
class TestLazyLogger:
    """Tests for lazily evaluated log messages."""

    def test_disabled_level_not_evaluated(self):
        """Message callables are not called below the logger's level."""
        lazy = get_lazy_logger("tests.lazy.disabled")
        lazy.logger.setLevel(logging.INFO)
        calls: list[int] = []

        lazy.debug(lambda: calls.append(1) or "expensive")

        assert calls == []

    def test_enabled_level_evaluated(self, caplog):
        """Message callables are called when the level is enabled."""
        lazy = get_lazy_logger("tests.lazy.enabled")
        lazy.logger.setLevel(logging.DEBUG)

        with caplog.at_level(logging.DEBUG, logger="tests.lazy.enabled"):
            lazy.debug(lambda: "db.find_due: 3 items")

        assert "db.find_due: 3 items" in caplog.text
