"""Pydantic schemas for the webhooks feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from dispatch_service.features.webhooks.states import DeliveryStatus

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


class EndpointCreate(BaseModel):
    """Payload used when registering an endpoint."""

    url: HttpUrl = Field(..., description="Target URL for webhook delivery (http or https)")
    secret: str = Field(
        ..., min_length=8, max_length=255, description="HMAC secret shared with the receiver"
    )
    enabled: bool = Field(default=True, description="Whether the endpoint receives deliveries")


class EndpointUpdate(BaseModel):
    """Payload used when updating an endpoint."""

    url: HttpUrl | None = Field(None, description="Target URL for webhook delivery")
    secret: str | None = Field(
        None, min_length=8, max_length=255, description="New HMAC secret"
    )
    enabled: bool | None = Field(None, description="Whether the endpoint receives deliveries")


class EndpointRead(BaseModel):
    """Representation returned from the API (the secret is never returned)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: str
    url: str
    enabled: bool
    created_at: datetime
    updated_at: datetime


class EndpointList(BaseModel):
    """Paginated list of endpoints."""

    items: list[EndpointRead]
    page: int
    page_size: int
    total: int


class DeliveryRead(BaseModel):
    """Representation of a delivery."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: str
    endpoint_id: UUID
    event_type: str
    payload: dict[str, Any]
    status: DeliveryStatus
    attempts: int
    response_status: int | None
    last_error: str | None
    next_attempt_at: datetime | None
    created_at: datetime
    updated_at: datetime


class DeliveryList(BaseModel):
    """Paginated list of deliveries."""

    items: list[DeliveryRead]
    page: int
    page_size: int
    total: int


class ReplayResponse(BaseModel):
    """Response from replaying a delivery."""

    ok: bool = True


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "DeliveryList",
    "DeliveryRead",
    "EndpointCreate",
    "EndpointList",
    "EndpointRead",
    "EndpointUpdate",
    "ReplayResponse",
]
