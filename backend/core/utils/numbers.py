"""
Currency rounding and price sanitising.
"""

import math
from decimal import ROUND_HALF_UP, Decimal


def round_to_two_decimals(value: float) -> float:
    """Round half-up to 2 decimal places (currency rounding, not banker's)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def sanitize_price(value: float | int | str | None, fallback: float = 0) -> float:
    """
    Coerce a user-supplied price to a non-negative 2-decimal float.

    ``None``, non-numeric strings, NaN and infinities return ``fallback``.
    """
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(number) or math.isinf(number):
        return fallback
    return max(0.0, round_to_two_decimals(number))


def format_currency(amount: float, currency: str = "THB") -> str:
    return f"{round_to_two_decimals(amount):,.2f} {currency.upper()}"
