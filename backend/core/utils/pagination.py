"""
Offset/page pagination over in-memory sequences.
"""

from collections.abc import Mapping, Sequence
from typing import Any

DEFAULT_LIMIT = 10
DEFAULT_PAGE = 1
MAX_LIMIT = 100


def paginate(
    items: Sequence[Any],
    limit: int = DEFAULT_LIMIT,
    page: int = DEFAULT_PAGE,
    offset: int | None = None,
) -> dict[str, Any]:
    """
    Slice ``items`` into one page.

    An explicit ``offset`` wins over ``page``; otherwise the offset is
    ``(page - 1) * limit``. The input is never mutated, so repeated calls
    with the same arguments return the same slice.

    Returns:
        dict with ``data``, ``total``, ``limit``, ``offset``, ``page`` and
        ``has_more`` (``offset + limit < total``).
    """
    limit = max(int(limit), 1)
    page = max(int(page), 1)
    if offset is None:
        offset = (page - 1) * limit
    offset = max(int(offset), 0)

    total = len(items)
    return {
        "data": list(items[offset:offset + limit]),
        "total": total,
        "limit": limit,
        "offset": offset,
        "page": page,
        "has_more": offset + limit < total,
    }


def _parse_int(value: Any, default: int | None, minimum: int) -> int | None:
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= minimum else default


def extract_pagination_params(query: Mapping[str, Any]) -> dict[str, int | None]:
    """
    Read ``limit``, ``page`` and ``offset`` from a query-string mapping.

    Missing or invalid values fall back to the defaults and ``limit`` is
    capped at ``MAX_LIMIT``.
    """
    limit = _parse_int(query.get("limit"), DEFAULT_LIMIT, 1)
    return {
        "limit": min(limit, MAX_LIMIT),
        "page": _parse_int(query.get("page"), DEFAULT_PAGE, 1),
        "offset": _parse_int(query.get("offset"), None, 0),
    }
