"""Webhook delivery configuration settings.

The retry ceiling, backoff curve and HTTP timeout are fixed constants of the
delivery engine (see ``features.webhooks.backoff``); only the operational
knobs around them are configurable here.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookSettings(BaseSettings):
    """Configuration for webhook fan-out and the due-retry sweeper."""

    # Fan-out
    subscribed_event_types: list[str] = Field(
        default=["order.created", "return.label_generated"],
        description="Domain event queues that fan out into webhook deliveries (JSON array)",
    )

    # Due-retry sweeper
    sweeper_enabled: bool = Field(
        default=True,
        description="Run the due-retry sweeper in this process",
    )
    sweep_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=3600.0,
        description="Seconds between sweeper passes",
    )
    sweep_batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum due deliveries re-enqueued per sweeper pass",
    )

    # Outbound requests
    user_agent: str = Field(
        default="dispatch-webhooks/1.0",
        min_length=1,
        description="User-Agent header sent with every webhook request",
    )

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )


__all__ = ["WebhookSettings"]
