"""Offset pagination helpers for list endpoints."""

from math import ceil
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Query

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100


def pagination_meta(total: int, page: int, limit: int) -> Dict[str, Any]:
    """
    Build the pagination block returned alongside list results.

    Args:
        total: Total number of matching rows
        page: 1-based page number
        limit: Page size

    Returns:
        Dict with total, page, limit, total_pages, has_next, has_prev
    """
    total_pages = ceil(total / limit) if limit else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def paginate(query: Query, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Tuple[List[Any], Dict[str, Any]]:
    """Apply offset/limit to an ordered query and return (items, meta)."""
    page = max(page, 1)
    limit = max(1, min(limit, MAX_PAGE_SIZE))

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()

    return items, pagination_meta(total, page, limit)
