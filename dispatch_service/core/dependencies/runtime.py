"""Access to the process runtime owned by the application lifespan."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from dispatch_service.core.exceptions import ServiceUnavailableException

if TYPE_CHECKING:
    from dispatch_service.features.webhooks.scheduler import DeliveryScheduler
    from dispatch_service.infra.metrics.delivery import DeliveryMetrics
    from dispatch_service.runtime import DispatchRuntime


def get_runtime(request: Request) -> DispatchRuntime:
    """The runtime stored on ``app.state`` by the lifespan.

    Raises:
        ServiceUnavailableException: If the application has no runtime yet
    """
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise ServiceUnavailableException(detail="Dispatch runtime is not initialized")
    return runtime


def get_metrics(request: Request) -> DeliveryMetrics:
    """Metrics object of the running runtime."""
    return get_runtime(request).metrics


def get_scheduler(request: Request) -> DeliveryScheduler:
    """Delivery scheduler of the running runtime."""
    return get_runtime(request).scheduler
