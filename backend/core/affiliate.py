"""
Affiliate program configuration.

This module is the single source of truth for commission rates, referral
code format and payout fees. It lives in core/ so both service and API
layers can import from it without creating circular dependencies.
"""

import re

# Default commission rates in percent, per conversion type
DEFAULT_COMMISSION_RATES: dict[str, float] = {
    "signup": 0,
    "booking": 10,
    "product_purchase": 5,
    "event_ticket_purchase": 10,
    "subscription": 15,
    "referral": 0,
}

# Conversion types that can be recorded through the conversions API
RECORDABLE_CONVERSION_TYPES = (
    "booking",
    "product_purchase",
    "event_ticket_purchase",
    "subscription",
)

# Points awarded to the referrer when a referred user signs up
REFERRAL_SIGNUP_POINTS = 200

PLATFORM_FEE_PERCENT = 5
PAYOUT_CURRENCY = "thb"

REFERRAL_CODE_PREFIX = "MT"
REFERRAL_CODE_SUFFIX_LENGTH = 8
REFERRAL_CODE_PATTERN = re.compile(r"^MT[A-Z0-9]{8}$")


def get_commission_rate(conversion_type: str) -> float:
    """Default rate for a conversion type; unknown types earn nothing."""
    return DEFAULT_COMMISSION_RATES.get(conversion_type, 0)


def calculate_commission_amount(value: float, rate: float) -> float:
    """Commission for a conversion value at ``rate`` percent, rounded to 2 places."""
    return round(value * rate / 100, 2)


def calculate_platform_fee(amount: float) -> float:
    return round(amount * PLATFORM_FEE_PERCENT / 100, 2)


def generate_referral_code(user_id: str) -> str:
    """
    Derive a user's referral code from their id.

    The code is ``MT`` followed by the last 8 alphanumeric characters of the
    id, uppercased, so it can be resolved back to the user by suffix.
    """
    cleaned = re.sub(r"[^A-Za-z0-9]", "", str(user_id))
    return f"{REFERRAL_CODE_PREFIX}{cleaned[-REFERRAL_CODE_SUFFIX_LENGTH:].upper()}"


def is_valid_referral_code(code: str | None) -> bool:
    return bool(code) and REFERRAL_CODE_PATTERN.match(code) is not None


def referral_code_suffix(code: str) -> str:
    """The user-id suffix encoded in a referral code, lowercased for lookup."""
    return code[len(REFERRAL_CODE_PREFIX):].lower()
