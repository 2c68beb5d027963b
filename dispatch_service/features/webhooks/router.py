"""API router for webhook endpoints and deliveries."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_service.core.dependencies.database import get_db_session
from dispatch_service.core.dependencies.runtime import get_scheduler
from dispatch_service.core.dependencies.tenant import get_tenant_id
from dispatch_service.features.webhooks.scheduler import DeliveryScheduler
from dispatch_service.features.webhooks.schemas import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DeliveryList,
    DeliveryRead,
    EndpointCreate,
    EndpointList,
    EndpointRead,
    EndpointUpdate,
    ReplayResponse,
)
from dispatch_service.features.webhooks.service import WebhookService
from dispatch_service.features.webhooks.states import DeliveryStatus
from dispatch_service.infra.logging import get_lazy_logger

router = APIRouter(tags=["webhooks"])

# Standard logger for INFO/WARNING/ERROR
logger = logging.getLogger(__name__)
# Lazy logger for DEBUG (zero overhead when DEBUG disabled)
lazy_logger = get_lazy_logger(__name__)

TenantId = Annotated[str, Depends(get_tenant_id)]
Session = Annotated[AsyncSession, Depends(get_db_session)]
Page = Annotated[int, Query(ge=1, description="1-indexed page number")]
PageSize = Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE, description="Items per page")]


# ----------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------


@router.get(
    "/endpoints",
    response_model=EndpointList,
    summary="List endpoints",
    description="List the tenant's webhook endpoints, newest first.",
)
async def list_endpoints(
    tenant_id: TenantId,
    session: Session,
    enabled: bool | None = None,
    page: Page = 1,
    page_size: PageSize = DEFAULT_PAGE_SIZE,
) -> EndpointList:
    """List endpoints with pagination."""
    service = WebhookService(session)
    result = await service.list_endpoints(
        tenant_id,
        enabled=enabled,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return EndpointList(
        items=[EndpointRead.model_validate(endpoint) for endpoint in result.items],
        page=page,
        page_size=page_size,
        total=result.total,
    )


@router.post(
    "/endpoints",
    response_model=EndpointRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an endpoint",
    description="Register a webhook endpoint for the tenant.",
)
async def create_endpoint(
    payload: EndpointCreate,
    tenant_id: TenantId,
    session: Session,
) -> EndpointRead:
    """Create a new endpoint.

    The secret is stored for signing but never returned.
    """
    service = WebhookService(session)
    endpoint = await service.create_endpoint(tenant_id, payload)
    return EndpointRead.model_validate(endpoint)


@router.get(
    "/endpoints/{endpoint_id}",
    response_model=EndpointRead,
    summary="Get an endpoint",
    responses={404: {"description": "Endpoint not found"}},
)
async def get_endpoint(
    endpoint_id: UUID,
    tenant_id: TenantId,
    session: Session,
) -> EndpointRead:
    """Get a single endpoint by ID."""
    service = WebhookService(session)
    endpoint = await service.get_endpoint(tenant_id, endpoint_id)
    return EndpointRead.model_validate(endpoint)


@router.put(
    "/endpoints/{endpoint_id}",
    response_model=EndpointRead,
    summary="Update an endpoint",
    responses={404: {"description": "Endpoint not found"}},
)
async def update_endpoint(
    endpoint_id: UUID,
    payload: EndpointUpdate,
    tenant_id: TenantId,
    session: Session,
) -> EndpointRead:
    """Update url, secret or enabled flag of an endpoint."""
    service = WebhookService(session)
    endpoint = await service.update_endpoint(tenant_id, endpoint_id, payload)
    return EndpointRead.model_validate(endpoint)


@router.delete(
    "/endpoints/{endpoint_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an endpoint",
    responses={404: {"description": "Endpoint not found"}},
)
async def delete_endpoint(
    endpoint_id: UUID,
    tenant_id: TenantId,
    session: Session,
) -> Response:
    """Delete an endpoint together with its deliveries."""
    service = WebhookService(session)
    await service.delete_endpoint(tenant_id, endpoint_id)

    logger.info(
        "Webhook endpoint deleted",
        extra={"endpoint_id": str(endpoint_id), "tenant_id": tenant_id, "operation": "router.delete_endpoint"},
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ----------------------------------------------------------------------
# Deliveries
# ----------------------------------------------------------------------


@router.get(
    "/deliveries",
    response_model=DeliveryList,
    summary="List deliveries",
    description="List the tenant's deliveries, newest first, optionally filtered by status or endpoint.",
)
async def list_deliveries(
    tenant_id: TenantId,
    session: Session,
    page: Page = 1,
    page_size: PageSize = DEFAULT_PAGE_SIZE,
    status_filter: Annotated[DeliveryStatus | None, Query(alias="status")] = None,
    endpoint_id: UUID | None = None,
) -> DeliveryList:
    """List deliveries with pagination."""
    service = WebhookService(session)
    result = await service.list_deliveries(
        tenant_id,
        status=status_filter.value if status_filter is not None else None,
        endpoint_id=endpoint_id,
        limit=page_size,
        offset=(page - 1) * page_size,
    )

    lazy_logger.debug(
        lambda: f"router.list_deliveries: tenant_id={tenant_id!r}, page={page} -> {len(result.items)}/{result.total}"
    )
    return DeliveryList(
        items=[DeliveryRead.model_validate(delivery) for delivery in result.items],
        page=page,
        page_size=page_size,
        total=result.total,
    )


@router.get(
    "/deliveries/{delivery_id}",
    response_model=DeliveryRead,
    summary="Get a delivery",
    responses={404: {"description": "Delivery not found"}},
)
async def get_delivery(
    delivery_id: UUID,
    tenant_id: TenantId,
    session: Session,
) -> DeliveryRead:
    """Get a single delivery by ID."""
    service = WebhookService(session)
    delivery = await service.get_delivery(tenant_id, delivery_id)
    return DeliveryRead.model_validate(delivery)


@router.post(
    "/deliveries/{delivery_id}/replay",
    response_model=ReplayResponse,
    summary="Replay a delivery",
    description="Reset a delivery to pending with zero attempts and attempt it again.",
    responses={404: {"description": "Delivery not found"}},
)
async def replay_delivery(
    delivery_id: UUID,
    tenant_id: TenantId,
    session: Session,
    scheduler: Annotated[DeliveryScheduler, Depends(get_scheduler)],
) -> ReplayResponse:
    """Replay a delivery."""
    service = WebhookService(session, scheduler=scheduler)
    await service.replay_delivery(tenant_id, delivery_id)
    return ReplayResponse(ok=True)


__all__ = ["router"]
