"""HMAC-SHA256 signing of webhook bodies.

The signed message is ``"{timestamp}.{body}"`` where ``timestamp`` is the
value sent in ``X-Dispatch-Timestamp`` (unix seconds) and ``body`` is the
exact request body. Receivers recompute the digest with their shared secret
and compare it to ``X-Dispatch-Signature``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

SIGNATURE_HEADER = "X-Dispatch-Signature"
TIMESTAMP_HEADER = "X-Dispatch-Timestamp"


def serialize_body(payload: Any) -> str:
    """Compact JSON encoding used for both the request body and the signature."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def sign(secret: str, timestamp: int | str, body: str) -> str:
    """Lowercase hex HMAC-SHA256 of ``"{timestamp}.{body}"`` keyed with ``secret``."""
    message = f"{timestamp}.{body}"
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(secret: str, timestamp: int | str, body: str, signature: str) -> bool:
    """Check a received signature in constant time."""
    expected = sign(secret, timestamp, body)
    return hmac.compare_digest(expected, signature)


__all__ = [
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "serialize_body",
    "sign",
    "verify_signature",
]
