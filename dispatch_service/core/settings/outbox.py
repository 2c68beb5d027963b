"""Outbox drain settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OutboxSettings(BaseSettings):
    """Configuration for the outbox drain worker.

    Environment variables use OUTBOX_ prefix.
    """

    enabled: bool = Field(
        default=True,
        description="Run the outbox drain worker in this process",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=3600.0,
        description="Seconds between drain passes when the previous batch was not full",
    )
    batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum pending outbox rows claimed per pass",
    )

    model_config = SettingsConfigDict(
        env_prefix="OUTBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )


__all__ = ["OutboxSettings"]
