"""
Rate-limit response headers and retry messages.
"""

import math
from datetime import UTC, datetime


def seconds_until(reset_at: datetime, now: datetime | None = None) -> int:
    """Whole seconds until ``reset_at``, rounded up and never negative."""
    now = now or datetime.now(UTC)
    return max(0, math.ceil((reset_at - now).total_seconds()))


def rate_limit_headers(
    limit: int,
    remaining: int,
    reset_at: datetime,
    now: datetime | None = None,
) -> dict[str, str]:
    """
    Build the X-RateLimit-* headers for a response.

    ``Retry-After`` is only added once the caller has no requests left.
    """
    headers = {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(max(0, remaining)),
        "X-RateLimit-Reset": reset_at.isoformat(),
    }
    if remaining <= 0:
        headers["Retry-After"] = str(seconds_until(reset_at, now))
    return headers


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''}"


def format_rate_limit_message(retry_after_seconds: int, message: str = "Too many requests.") -> str:
    """
    Human-readable retry hint, e.g. "Too many requests. Please wait 1 minute and 5 seconds."

    Zero-valued parts are left out; with no wait at all only ``message`` is returned.
    """
    if retry_after_seconds <= 0:
        return message
    minutes, seconds = divmod(int(retry_after_seconds), 60)
    parts = []
    if minutes:
        parts.append(_plural(minutes, "minute"))
    if seconds:
        parts.append(_plural(seconds, "second"))
    return f"{message} Please wait {' and '.join(parts)}."
