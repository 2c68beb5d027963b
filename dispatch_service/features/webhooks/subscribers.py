"""FastStream subscribers wiring broker queues to the delivery engine.

    <event type queue>  -> DeliveryCreator.create_deliveries_for_event
    webhooks.deliver    -> DeliveryWorker.process_delivery

Handlers that raise are rejected by the broker without requeue; the rows
they were working on stay pending or retrying and the sweeper re-enqueues
them.
"""

from collections.abc import Awaitable, Callable, Iterable
import logging
from typing import TYPE_CHECKING, Any

from dispatch_service.infra.messaging.conventions import DELIVER_QUEUE, queue_for_event

if TYPE_CHECKING:
    from faststream.rabbit import RabbitBroker

    from dispatch_service.features.webhooks.dispatcher import DeliveryCreator
    from dispatch_service.features.webhooks.worker import DeliveryWorker

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[None]]


def make_event_handler(creator: "DeliveryCreator", event_type: str) -> Handler:
    """Handler fanning a domain event of ``event_type`` out to endpoints."""

    async def handle_domain_event(body: dict[str, Any]) -> None:
        await creator.create_deliveries_for_event(event_type, body)

    handle_domain_event.__name__ = f"handle_{event_type.replace('.', '_')}"
    return handle_domain_event


def make_delivery_handler(worker: "DeliveryWorker") -> Handler:
    """Handler executing one delivery-attempt message."""

    async def handle_delivery_attempt(body: dict[str, Any]) -> None:
        delivery_id = body.get("deliveryId")
        if not delivery_id:
            logger.warning(
                "Delivery attempt without deliveryId dropped",
                extra={"operation": "subscriber.deliver"},
            )
            return
        await worker.process_delivery(delivery_id)

    return handle_delivery_attempt


def register_subscribers(
    broker: "RabbitBroker",
    creator: "DeliveryCreator",
    worker: "DeliveryWorker",
    event_types: Iterable[str],
) -> list[str]:
    """Attach the delivery engine's handlers to ``broker``.

    Must run before the broker is started.

    Returns:
        Queue names subscribed to
    """
    queues: list[str] = []
    for event_type in event_types:
        queue = queue_for_event(event_type)
        broker.subscriber(queue)(make_event_handler(creator, event_type))
        queues.append(queue)

    broker.subscriber(DELIVER_QUEUE)(make_delivery_handler(worker))
    queues.append(DELIVER_QUEUE)

    logger.info(
        "Delivery subscribers registered",
        extra={"queues": queues, "operation": "subscribers.register"},
    )
    return queues


__all__ = ["make_delivery_handler", "make_event_handler", "register_subscribers"]
