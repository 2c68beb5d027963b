"""Health check response schemas."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class HealthResponse(BaseModel):
    """Overall service health."""

    status: HealthStatus = Field(..., description="Overall status")
    service: str = Field(..., description="Service name")
    broker: dict[str, Any] = Field(..., description="RabbitMQ broker check result")


class LivenessResponse(BaseModel):
    """Liveness probe response."""

    status: Literal["alive"] = "alive"
    service: str
