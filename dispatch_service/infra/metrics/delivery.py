"""Prometheus metrics for the outbox drain and webhook delivery engine.

Each ``DeliveryMetrics`` instance owns its own ``CollectorRegistry``. The
runtime builds one and hands it to every worker; tests build a fresh one per
case, so counters never leak between tests or between two runtimes living
in the same process.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Webhook round-trip buckets; the client times out at 5s
DELIVERY_LATENCY_BUCKETS = (
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
)


class DeliveryMetrics:
    """Counters and gauges describing delivery health.

    Metrics:
        webhook_success_total: Deliveries that ended ``delivered``.
        webhook_failure_total: Deliveries that ended ``failed`` (non-retryable response).
        webhook_retry_total: Attempts that were re-scheduled with backoff.
        webhook_success_rate: success / (success + failure), 0 when both are 0.
        dlq_depth: Deliveries currently ``dead``, read back from the store.
        events_published_total{type}: Outbox events published to the broker.
        webhook_delivery_duration_seconds: HTTP round-trip time per attempt.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.webhook_retry_total = Counter(
            "webhook_retry_total",
            "Webhook delivery attempts that failed with a retryable outcome and were rescheduled.",
            registry=self.registry,
        )
        self.webhook_success_total = Counter(
            "webhook_success_total",
            "Webhook deliveries that received a 2xx response.",
            registry=self.registry,
        )
        self.webhook_failure_total = Counter(
            "webhook_failure_total",
            "Webhook deliveries that received a non-retryable response.",
            registry=self.registry,
        )
        self.webhook_success_rate = Gauge(
            "webhook_success_rate",
            "Share of terminal webhook outcomes that succeeded: success / (success + failure).",
            registry=self.registry,
        )
        self.dlq_depth = Gauge(
            "dlq_depth",
            "Webhook deliveries currently in the dead state.",
            registry=self.registry,
        )
        self.events_published_total = Counter(
            "events_published_total",
            "Outbox events published to the broker, by event type.",
            ["type"],
            registry=self.registry,
        )
        self.webhook_delivery_duration_seconds = Histogram(
            "webhook_delivery_duration_seconds",
            "Webhook HTTP attempt duration in seconds, including timeouts.",
            buckets=DELIVERY_LATENCY_BUCKETS,
            registry=self.registry,
        )

    def record_success(self) -> None:
        """Count a delivered webhook and refresh the success rate."""
        self.webhook_success_total.inc()
        self.update_success_rate()

    def record_failure(self) -> None:
        """Count a non-retryable failure and refresh the success rate."""
        self.webhook_failure_total.inc()
        self.update_success_rate()

    def record_retry(self) -> None:
        """Count an attempt that was rescheduled with backoff."""
        self.webhook_retry_total.inc()

    def record_published(self, event_type: str) -> None:
        """Count an outbox event published to the broker."""
        self.events_published_total.labels(type=event_type).inc()

    def observe_attempt(self, seconds: float) -> None:
        """Record the duration of one HTTP attempt."""
        self.webhook_delivery_duration_seconds.observe(seconds)

    def update_success_rate(self) -> float:
        """Recompute ``webhook_success_rate`` from the success/failure counters."""
        succeeded = self.registry.get_sample_value("webhook_success_total") or 0.0
        failed = self.registry.get_sample_value("webhook_failure_total") or 0.0
        total = succeeded + failed
        rate = succeeded / total if total else 0.0
        self.webhook_success_rate.set(rate)
        return rate

    def set_dlq_depth(self, depth: int) -> None:
        """Set ``dlq_depth`` to the dead-delivery count read from the store."""
        self.dlq_depth.set(depth)

    def render(self) -> tuple[bytes, str]:
        """Render the registry in Prometheus text exposition format.

        Returns:
            Tuple of (payload, content type) for the /metrics response.
        """
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


__all__ = ["DELIVERY_LATENCY_BUCKETS", "DeliveryMetrics"]
