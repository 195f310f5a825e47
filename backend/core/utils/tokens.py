"""
Opaque identifiers: unsubscribe tokens and booking numbers.
"""

import re
import secrets
from datetime import UTC, datetime

_UNSUBSCRIBE_TOKEN = re.compile(r"^[a-f0-9]{64}$")

BOOKING_NUMBER_PREFIX = "BK"


def generate_unsubscribe_token() -> str:
    """32 random bytes as 64 lowercase hex characters."""
    return secrets.token_hex(32)


def is_valid_unsubscribe_token(token: str | None) -> bool:
    return bool(token) and _UNSUBSCRIBE_TOKEN.match(token) is not None


def generate_booking_number(now: datetime | None = None, randomize: bool = False) -> str:
    """
    ``BK`` + ``YYYYMMDD`` + 4 digits.

    The digits are the tail of the millisecond timestamp; ``randomize`` swaps
    them for random digits, used when retrying after a collision.
    """
    now = now or datetime.now(UTC)
    if randomize:
        suffix = f"{secrets.randbelow(10_000):04d}"
    else:
        suffix = str(int(now.timestamp() * 1000))[-4:]
    return f"{BOOKING_NUMBER_PREFIX}{now:%Y%m%d}{suffix}"
