"""Webhooks feature package: endpoints, deliveries and the delivery engine."""

from .backoff import MAX_ATTEMPTS, compute_backoff_ms, should_retry
from .client import WebhookClient, WebhookDeliveryResult
from .dispatcher import DeliveryCreator
from .events import (
    DEFAULT_SUBSCRIBED_EVENT_TYPES,
    OrderEvents,
    ReturnEvents,
    WebhookEvents,
    build_delivery_updated_payload,
)
from .models import Delivery, Endpoint
from .repository import DeliveryRepository, EndpointRepository
from .router import router
from .scheduler import DeliveryScheduler
from .service import WebhookService
from .signing import sign, verify_signature
from .states import Dead, Delivered, DeliveryState, DeliveryStatus, Failed, Pending, Retrying
from .subscribers import register_subscribers
from .sweeper import DueRetrySweeper
from .worker import DeliveryOutcome, DeliveryWorker

__all__ = [
    "DEFAULT_SUBSCRIBED_EVENT_TYPES",
    "MAX_ATTEMPTS",
    "Dead",
    "Delivered",
    "Delivery",
    "DeliveryCreator",
    "DeliveryOutcome",
    "DeliveryRepository",
    "DeliveryScheduler",
    "DeliveryState",
    "DeliveryStatus",
    "DeliveryWorker",
    "DueRetrySweeper",
    "Endpoint",
    "EndpointRepository",
    "Failed",
    "OrderEvents",
    "Pending",
    "ReturnEvents",
    "Retrying",
    "WebhookClient",
    "WebhookDeliveryResult",
    "WebhookEvents",
    "WebhookService",
    "build_delivery_updated_payload",
    "compute_backoff_ms",
    "register_subscribers",
    "router",
    "should_retry",
    "sign",
    "verify_signature",
]
