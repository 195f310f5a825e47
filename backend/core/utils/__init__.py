"""
Small pure helpers shared by routes and services.
"""

from .numbers import format_currency, round_to_two_decimals, sanitize_price
from .pagination import extract_pagination_params, paginate
from .rate_limit import format_rate_limit_message, rate_limit_headers
from .text import generate_unique_slug, get_initials, is_valid_slug, slugify, truncate_text
from .tokens import (
    generate_booking_number,
    generate_unsubscribe_token,
    is_valid_unsubscribe_token,
)

__all__ = [
    "paginate",
    "extract_pagination_params",
    "slugify",
    "is_valid_slug",
    "generate_unique_slug",
    "truncate_text",
    "get_initials",
    "round_to_two_decimals",
    "sanitize_price",
    "format_currency",
    "rate_limit_headers",
    "format_rate_limit_message",
    "generate_unsubscribe_token",
    "is_valid_unsubscribe_token",
    "generate_booking_number",
]
