"""Prometheus metrics owned by an injectable registry object."""

from dispatch_service.infra.metrics.delivery import DeliveryMetrics

__all__ = ["DeliveryMetrics"]
