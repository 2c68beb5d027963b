"""Prometheus metrics endpoint for the delivery engine.

Endpoints:
    GET /metrics - Prometheus scrape endpoint (text exposition format)

The registry exposed is the one owned by the running runtime's
``DeliveryMetrics``, so only delivery-engine metrics appear here:

    - webhook_retry_total, webhook_success_total, webhook_failure_total
    - webhook_success_rate, dlq_depth
    - events_published_total{type}
    - webhook_delivery_duration_seconds

Example Prometheus Configuration:
    ```yaml
    scrape_configs:
      - job_name: 'dispatch-service'
        static_configs:
          - targets: ['localhost:8000']
        metrics_path: '/metrics'
        scrape_interval: 15s
    ```
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from dispatch_service.core.dependencies.runtime import get_metrics
from dispatch_service.infra.metrics.delivery import DeliveryMetrics

router = APIRouter(tags=["observability"])


@router.get("/metrics")
async def metrics(delivery_metrics: Annotated[DeliveryMetrics, Depends(get_metrics)]) -> Response:
    """Expose delivery metrics for scraping.

    Returns:
        Response with Prometheus metrics in text exposition format.
    """
    data, content_type = delivery_metrics.render()
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
