"""
Rate limiting middleware using slowapi.

Limits are keyed by the real client IP and stored in Redis when REDIS_URL is
set, in process memory otherwise. ``SlowAPIMiddleware`` applies the default
limit to every route; routes decorated with ``@limiter.limit(...)`` use their
own entry from ``RATE_LIMITS``.

Rate Limits:
- Login: 5 per minute
- Registration: 3 per minute
- Newsletter subscribe: 5 per minute
- Contact form: 3 per minute
- Referral code redemption: 10 per minute
- Admin bulk update: 30 per minute
- Default: 100 per minute
"""

import ipaddress
import logging
import re
from datetime import UTC, datetime, timedelta

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.responses import error_response
from core.utils.rate_limit import format_rate_limit_message, rate_limit_headers
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

# Simple pattern to quickly reject obviously invalid IPs before parsing
_IP_LIKE = re.compile(r"^[\d.:a-fA-F]+$")


def _is_valid_ip(value: str) -> bool:
    """Return True if *value* looks like a valid IPv4 or IPv6 address."""
    if not _IP_LIKE.match(value):
        return False
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def _is_private_ip(value: str) -> bool:
    """Return True if *value* is a private, loopback, or link-local address.

    Private IPs in X-Forwarded-For are untrustworthy: a client can spoof
    ``X-Forwarded-For: 127.0.0.1`` to land in a shared bucket.
    """
    try:
        addr = ipaddress.ip_address(value)
        return addr.is_private or addr.is_loopback or addr.is_link_local
    except ValueError:
        return False


def _get_real_ip(request: Request) -> str:
    """Extract real client IP from proxy headers, falling back to remote address.

    The extracted IP is validated so crafted header values cannot be used
    to pick an arbitrary bucket.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # X-Forwarded-For can be a comma-separated list; first entry is the client
        candidate = forwarded.split(",")[0].strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        candidate = real_ip.strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    return get_remote_address(request)


def get_client_ip(request: Request) -> str | None:
    """Client IP for audit and subscription records."""
    ip = _get_real_ip(request)
    return ip if ip and _is_valid_ip(ip) else None


# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "login": "5/minute",
    "register": "3/minute",
    "newsletter_subscribe": "5/minute",
    "contact": "3/minute",
    "affiliate_redeem": "10/minute",
    "bulk_update": "30/minute",
    "default": "100/minute",
}

_storage_uri = settings.redis_url if settings.redis_url else "memory://"

if not settings.redis_url:
    logger.warning(
        "Rate limiter using in-memory storage; not suitable for multi-worker production"
    )
    if settings.environment == "production":
        logger.critical(
            "Rate limiter has no Redis in production. "
            "Limits are per-process only. Set REDIS_URL in environment variables."
        )

limiter = Limiter(
    key_func=_get_real_ip,
    storage_uri=_storage_uri,
    default_limits=[RATE_LIMITS["default"]],
)


def get_rate_limit(endpoint: str) -> str:
    """
    Get rate limit configuration for a specific endpoint.

    Example:
        >>> get_rate_limit("login")
        "5/minute"
        >>> get_rate_limit("unknown")
        "100/minute"
    """
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])


def _window_reset(request: Request, exc: RateLimitExceeded) -> tuple[int, datetime]:
    """Return ``(limit, reset_at)`` for the limit that was just exceeded."""
    now = datetime.now(UTC)
    item = exc.limit.limit
    reset_at = now + timedelta(seconds=item.get_expiry())
    current = getattr(request.state, "view_rate_limit", None)
    if current is not None:
        try:
            reset_epoch, _remaining = limiter.limiter.get_window_stats(current[0], *current[1])
            reset_at = datetime.fromtimestamp(reset_epoch, tz=UTC)
        except Exception as exc_stats:
            logger.warning("Could not read rate limit window: %s", exc_stats)
    return item.amount, reset_at


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return the 429 error envelope with Retry-After and X-RateLimit-* headers."""
    limit, reset_at = _window_reset(request, exc)
    headers = rate_limit_headers(limit, 0, reset_at)
    retry_after = int(headers["Retry-After"])
    logger.info(
        "Rate limit exceeded for %s on %s",
        _get_real_ip(request),
        request.url.path,
        extra={"path": request.url.path},
    )
    return error_response(
        format_rate_limit_message(retry_after),
        429,
        headers=headers,
        retryAfter=retry_after,
        resetAt=reset_at.isoformat(),
    )
