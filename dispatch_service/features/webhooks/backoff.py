"""Retry policy for webhook deliveries.

Backoff doubles from 5s and is capped at 60s:

    attempt  1     2      3      4      5      6+
    delay    5s    10s    20s    40s    60s    60s

There is no jitter, and the constants are deliberately not configurable.
"""

from __future__ import annotations

BASE_MS = 5_000
CAP_MS = 60_000
MAX_ATTEMPTS = 5
REQUEST_TIMEOUT_SECONDS = 5.0


def compute_backoff_ms(attempt: int) -> int:
    """Delay before the next attempt, after ``attempt`` attempts were made.

    Args:
        attempt: 1-indexed count of attempts so far; values below 1 count as 1

    Returns:
        Delay in milliseconds
    """
    attempt = max(attempt, 1)
    # Cap the exponent too so huge attempt counts stay cheap
    exponent = min(attempt - 1, 16)
    return min(BASE_MS * 2**exponent, CAP_MS)


def should_retry(status: int | None, error: BaseException | str | None = None) -> bool:
    """Classify an attempt outcome as retryable.

    Args:
        status: HTTP status code, or None when no response was received
        error: Transport error (timeout, connection refused, ...), if any

    Returns:
        True for transport errors, missing responses, 5xx and 429;
        False for 2xx and every other 4xx
    """
    if error:
        return True
    if status is None:
        return True
    if 200 <= status < 300:
        return False
    if status >= 500 or status == 429:
        return True
    return False


__all__ = [
    "BASE_MS",
    "CAP_MS",
    "MAX_ATTEMPTS",
    "REQUEST_TIMEOUT_SECONDS",
    "compute_backoff_ms",
    "should_retry",
]
