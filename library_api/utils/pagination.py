"""
Pagination Helpers

Shared page/limit handling for list views backed by the relational store.
"""

import math
from typing import Any


def paginate(page: int = 1, limit: int = 10, max_limit: int = 100) -> tuple[int, int]:
    """
    Clamp page/limit and compute the database offset.

    Page 1 -> offset 0, page 2 -> offset limit, ...

    Returns:
        (offset, limit)
    """
    page = max(1, int(page))
    limit = min(max_limit, max(1, int(limit)))
    return (page - 1) * limit, limit


def pagination_response(items: list[Any], total: int, page: int, limit: int) -> dict[str, Any]:
    """Build the standard paginated envelope."""
    pages = math.ceil(total / limit) if total > 0 else 0
    return {
        "items": items,
        "total": total,
        "page": page,
        "per_page": limit,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }
