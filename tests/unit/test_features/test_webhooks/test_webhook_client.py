"""Unit tests for WebhookClient."""

from __future__ import annotations

import json

import httpx
import pytest

from dispatch_service.features.webhooks.client import MAX_RESPONSE_BODY_CHARS, WebhookClient
from dispatch_service.features.webhooks.signing import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    verify_signature,
)

URL = "https://receiver.example.com/hooks"


def _client(handler) -> WebhookClient:
    return WebhookClient(transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestWebhookClientDeliver:
    """Tests for WebhookClient.deliver."""

    @pytest.mark.asyncio
    async def test_signed_request(self):
        """Test that the request carries a verifiable signature over the exact body."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, text="ok")

        client = _client(handler)
        result = await client.deliver(URL, "test_secret", {"hello": "world"}, timestamp=1710000000)
        await client.aclose()

        request = captured[0]
        body = request.content.decode("utf-8")
        assert request.method == "POST"
        assert body == '{"hello":"world"}'
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers[TIMESTAMP_HEADER] == "1710000000"
        assert verify_signature("test_secret", 1710000000, body, request.headers[SIGNATURE_HEADER])
        assert request.headers["User-Agent"] == "dispatch-webhooks/1.0"

        assert result.success is True
        assert result.status_code == 200
        assert result.response_body == "ok"
        assert result.error_message is None
        assert result.response_time_ms is not None

    @pytest.mark.asyncio
    async def test_timestamp_defaults_to_now(self):
        """Test that a timestamp is generated when none is passed."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(204)

        client = _client(handler)
        await client.deliver(URL, "s3cretvalue", {"a": 1})
        await client.aclose()

        assert int(captured[0].headers[TIMESTAMP_HEADER]) > 1710000000

    @pytest.mark.asyncio
    async def test_non_2xx_reported_not_raised(self):
        """Test that error statuses become unsuccessful results."""
        client = _client(lambda request: httpx.Response(503, text="busy"))
        result = await client.deliver(URL, "secret", {})
        await client.aclose()

        assert result.success is False
        assert result.status_code == 503
        assert result.error_message == "HTTP 503"
        assert result.response_body == "busy"

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test that a timeout yields no status and a timeout message."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(handler)
        result = await client.deliver(URL, "secret", {})
        await client.aclose()

        assert result.success is False
        assert result.status_code is None
        assert result.error_message == "Request timeout after 5.0s"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test that transport errors are captured in the result."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        result = await client.deliver(URL, "secret", {})
        await client.aclose()

        assert result.success is False
        assert result.status_code is None
        assert result.error_message == "Request error: connection refused"

    @pytest.mark.asyncio
    async def test_response_body_truncated(self):
        """Test that large response bodies are truncated."""
        client = _client(lambda request: httpx.Response(200, text="x" * 10_000))
        result = await client.deliver(URL, "secret", {})
        await client.aclose()

        assert result.response_body is not None
        assert len(result.response_body) == MAX_RESPONSE_BODY_CHARS

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self):
        """Test that a caller-owned client survives aclose."""
        shared = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = WebhookClient(http_client=shared)

        await client.aclose()

        assert shared.is_closed is False
        await shared.aclose()

    def test_build_headers(self):
        """Test that build_headers carries the configured user agent."""
        client = WebhookClient(user_agent="custom/2.0", transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        headers = client.build_headers("secret", 1, json.dumps({}))

        assert headers["User-Agent"] == "custom/2.0"
        assert headers[TIMESTAMP_HEADER] == "1"
