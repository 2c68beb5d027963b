"""Unit tests for the settings modules and cached loaders."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dispatch_service.core.settings import (
    AppSettings,
    DatabaseSettings,
    OutboxSettings,
    RabbitSettings,
    WebhookSettings,
    get_settings,
    get_webhook_settings,
)


@pytest.mark.unit
class TestRabbitSettings:
    """Tests for RabbitMQ connection settings."""

    def test_components_build_url(self):
        """Components are assembled into an AMQP URI."""
        settings = RabbitSettings(enabled=True, host="mq", port=5673, username="svc", password="p@ss", vhost="dispatch")

        assert settings.get_url() == "amqp://svc:p%40ss@mq:5673/dispatch"

    def test_uri_overrides_components(self):
        """A full AMQP URI populates host, port and TLS."""
        settings = RabbitSettings(enabled=True, amqp_uri="amqps://u:pw@broker.internal:5671/prod")

        assert settings.host == "broker.internal"
        assert settings.port == 5671
        assert settings.ssl_enabled is True
        assert settings.get_url().startswith("amqps://u:pw@broker.internal:5671/prod")

    def test_disabled_has_no_url(self):
        """Asking a disabled broker for its URL raises."""
        with pytest.raises(ValueError):
            RabbitSettings(enabled=False).get_url()


@pytest.mark.unit
class TestDatabaseSettings:
    """Tests for database settings."""

    def test_plain_postgres_url_uses_psycopg(self):
        """Bare PostgreSQL URLs are upgraded to the async psycopg driver."""
        settings = DatabaseSettings(database_url="postgresql://u:p@db:5432/dispatch")

        assert settings.get_sqlalchemy_url() == "postgresql+psycopg://u:p@db:5432/dispatch"
        assert settings.is_sqlite is False

    def test_unconfigured_raises(self):
        """An empty URL means the database is not configured."""
        settings = DatabaseSettings(database_url="")

        assert settings.is_configured is False
        with pytest.raises(ValueError):
            settings.get_sqlalchemy_url()

    def test_sqlite_detected(self):
        assert DatabaseSettings(database_url="sqlite+aiosqlite:///dispatch.db").is_sqlite is True


@pytest.mark.unit
class TestWorkerSettings:
    """Tests for outbox and webhook worker settings."""

    def test_defaults(self):
        """Drain and sweeper defaults match the documented intervals."""
        outbox = OutboxSettings()
        webhooks = WebhookSettings()

        assert outbox.batch_size == 50
        assert outbox.poll_interval_seconds == 5.0
        assert webhooks.sweep_interval_seconds == 5.0
        assert webhooks.subscribed_event_types == ["order.created", "return.label_generated"]

    def test_app_environment(self):
        assert AppSettings().is_production is False
        assert AppSettings(environment="production").is_production is True

    def test_env_override(self, monkeypatch):
        """Environment variables override defaults through the cached loader."""
        monkeypatch.setenv("WEBHOOK_SWEEP_BATCH_SIZE", "7")
        monkeypatch.setenv("WEBHOOK_SUBSCRIBED_EVENT_TYPES", '["order.created"]')

        settings = get_webhook_settings()

        assert settings.sweep_batch_size == 7
        assert settings.subscribed_event_types == ["order.created"]

    def test_invalid_interval_rejected(self):
        """Non-positive intervals fail validation."""
        with pytest.raises(ValidationError):
            OutboxSettings(poll_interval_seconds=0)

    def test_settings_are_frozen(self):
        """Settings objects cannot be mutated after load."""
        settings = WebhookSettings()

        with pytest.raises(ValidationError):
            settings.sweep_batch_size = 1


@pytest.mark.unit
class TestUnifiedSettings:
    """Tests for the unified settings object."""

    def test_composes_every_domain(self):
        settings = get_settings()

        assert settings.app.service_name == "dispatch-service"
        assert settings.outbox.enabled is True
        assert settings.webhooks.sweeper_enabled is True
        assert settings.rabbit.enabled is False

    def test_cached(self):
        assert get_settings() is get_settings()
