"""Health check API endpoints.

Provides:
- Comprehensive health: /health - Status plus the broker connection check
- Liveness probes: /health/live - Is the process alive?
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response, status

from dispatch_service.core.settings import get_app_settings
from dispatch_service.features.health.schemas import HealthResponse, LivenessResponse
from dispatch_service.infra.messaging.broker import check_broker_health

router = APIRouter(prefix="/health", tags=["health"])


def _get_broker(request: Request) -> Any:
    """Broker of the running runtime, if any."""
    runtime = getattr(request.app.state, "runtime", None)
    return getattr(runtime, "broker", None)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Service health",
    description="Returns the service status and the RabbitMQ broker check.",
)
async def health_check(
    response: Response,
    broker: Annotated[Any, Depends(_get_broker)],
) -> HealthResponse:
    """Comprehensive health check endpoint.

    The service is ``healthy`` when the broker is connected, ``degraded``
    when no broker is configured and ``unhealthy`` when the broker is
    configured but not running (HTTP 503).
    """
    broker_check = await check_broker_health(broker)

    match broker_check["status"]:
        case "healthy":
            overall = "healthy"
        case "unavailable":
            overall = "degraded"
        case _:
            overall = "unhealthy"
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        service=get_app_settings().service_name,
        broker=broker_check,
    )


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
)
async def liveness() -> LivenessResponse:
    """Liveness probe: the process is serving requests."""
    return LivenessResponse(service=get_app_settings().service_name)
