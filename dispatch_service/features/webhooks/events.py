"""Event types and payload builders for the webhook pipeline.

Domain events arrive on queues named after their type and carry
``tenantId`` and ``at`` next to their own fields. Every delivery state
change is announced as a ``webhook.delivery_updated`` event staged in the
outbox in the same transaction as the change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from dispatch_service.core.database.base import utcnow
from dispatch_service.infra.messaging.conventions import DELIVERY_UPDATED_EVENT

if TYPE_CHECKING:
    from uuid import UUID

    from dispatch_service.features.webhooks.states import DeliveryState


class OrderEvents:
    """Order-related domain event types."""

    CREATED = "order.created"


class ReturnEvents:
    """Return-related domain event types."""

    LABEL_GENERATED = "return.label_generated"


class WebhookEvents:
    """Events emitted by the delivery engine itself."""

    DELIVERY_UPDATED = DELIVERY_UPDATED_EVENT


# Domain events fanned out to webhook endpoints by default
DEFAULT_SUBSCRIBED_EVENT_TYPES = [
    OrderEvents.CREATED,
    ReturnEvents.LABEL_GENERATED,
]


def build_delivery_updated_payload(
    *,
    tenant_id: str,
    delivery_id: UUID,
    state: DeliveryState,
    attempts: int,
) -> dict[str, Any]:
    """Body of the ``webhook.delivery_updated`` event.

    Args:
        tenant_id: Tenant owning the delivery
        delivery_id: Delivery that changed
        state: State after the change
        attempts: Attempt count after the change

    Returns:
        ``{tenantId, deliveryId, status, attempts, responseStatus, at}``
    """
    return {
        "tenantId": tenant_id,
        "deliveryId": str(delivery_id),
        "status": state.status.value,
        "attempts": attempts,
        "responseStatus": getattr(state, "response_status", None),
        "at": utcnow().isoformat(),
    }


__all__ = [
    "DEFAULT_SUBSCRIBED_EVENT_TYPES",
    "OrderEvents",
    "ReturnEvents",
    "WebhookEvents",
    "build_delivery_updated_payload",
]
