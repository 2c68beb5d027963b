"""HTTP client for webhook delivery."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from dispatch_service.features.webhooks.backoff import REQUEST_TIMEOUT_SECONDS
from dispatch_service.features.webhooks.signing import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    serialize_body,
    sign,
)
from dispatch_service.infra.logging import get_lazy_logger

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

DEFAULT_USER_AGENT = "dispatch-webhooks/1.0"
MAX_RESPONSE_BODY_CHARS = 5000


@dataclass
class WebhookDeliveryResult:
    """Result of a webhook delivery attempt."""

    success: bool
    status_code: int | None
    response_body: str | None
    response_time_ms: int | None
    error_message: str | None


class WebhookClient:
    """HTTP client for delivering signed webhook requests.

    Handles:
    - HMAC-SHA256 signature generation
    - Timeout and transport error handling
    - Response capture

    The client never raises for delivery problems; every outcome is reported
    through ``WebhookDeliveryResult`` so the caller can classify it.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize webhook client.

        Args:
            timeout_seconds: Per-request timeout
            user_agent: Value of the User-Agent header
            http_client: Shared client to reuse; owned by the caller
            transport: Transport for a client created here (tests pass a MockTransport)
        """
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    def build_headers(self, secret: str, timestamp: int, body: str) -> dict[str, str]:
        """Headers for a signed delivery request."""
        return {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            TIMESTAMP_HEADER: str(timestamp),
            SIGNATURE_HEADER: sign(secret, timestamp, body),
        }

    async def deliver(
        self,
        url: str,
        secret: str,
        payload: Any,
        *,
        timestamp: int | None = None,
    ) -> WebhookDeliveryResult:
        """POST a signed JSON payload to an endpoint.

        Args:
            url: Endpoint URL
            secret: Endpoint HMAC secret
            payload: JSON-serializable body
            timestamp: Unix seconds used for signing; defaults to now

        Returns:
            WebhookDeliveryResult with delivery status and response
        """
        start_time = time.monotonic()

        body = serialize_body(payload)
        if timestamp is None:
            timestamp = int(time.time())
        headers = self.build_headers(secret, timestamp, body)

        lazy_logger.debug(lambda: f"client.deliver: url={url}, bytes={len(body)}")

        try:
            response = await self._client.post(
                url,
                content=body.encode("utf-8"),
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException:
            response_time_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(
                "Webhook delivery timeout",
                extra={
                    "url": url,
                    "timeout_seconds": self.timeout_seconds,
                    "operation": "client.deliver",
                },
            )
            return WebhookDeliveryResult(
                success=False,
                status_code=None,
                response_body=None,
                response_time_ms=response_time_ms,
                error_message=f"Request timeout after {self.timeout_seconds}s",
            )
        except httpx.RequestError as exc:
            response_time_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(
                "Webhook delivery request error",
                extra={
                    "url": url,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "operation": "client.deliver",
                },
            )
            return WebhookDeliveryResult(
                success=False,
                status_code=None,
                response_body=None,
                response_time_ms=response_time_ms,
                error_message=f"Request error: {exc}" if str(exc) else f"Request error: {type(exc).__name__}",
            )

        response_time_ms = int((time.monotonic() - start_time) * 1000)
        success = 200 <= response.status_code < 300
        response_body = response.text[:MAX_RESPONSE_BODY_CHARS] if response.text else None

        if success:
            logger.info(
                "Webhook delivered successfully",
                extra={
                    "url": url,
                    "status_code": response.status_code,
                    "response_time_ms": response_time_ms,
                    "operation": "client.deliver",
                },
            )
        else:
            logger.warning(
                "Webhook delivery failed with non-2xx status",
                extra={
                    "url": url,
                    "status_code": response.status_code,
                    "response_time_ms": response_time_ms,
                    "operation": "client.deliver",
                },
            )

        return WebhookDeliveryResult(
            success=success,
            status_code=response.status_code,
            response_body=response_body,
            response_time_ms=response_time_ms,
            error_message=None if success else f"HTTP {response.status_code}",
        )


__all__ = ["DEFAULT_USER_AGENT", "WebhookClient", "WebhookDeliveryResult"]
