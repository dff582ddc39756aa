from __future__ import annotations

import math
from typing import Any, Callable


MAX_PER_PAGE = 100


def normalize_page_args(page: Any, per_page: Any, default_per_page: int) -> tuple[int, int]:
    """
    Lenient page/perPage parsing: anything that is not a positive integer
    falls back to the default (page 1, default_per_page).
    """
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        per_page = int(per_page)
    except (TypeError, ValueError):
        per_page = default_per_page

    page = max(page, 1)  # Ensure page >= 1
    if per_page < 1:
        per_page = default_per_page
    return page, min(per_page, MAX_PER_PAGE)


def paginate(query, page: int, per_page: int, serialize: Callable[[Any], dict]) -> dict:
    """
    Run an ordered query one page at a time.

    totalPages is ceil(totalItems / perPage), so an empty result has 0 pages.
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "totalItems": total,
        "totalPages": math.ceil(total / per_page),
        "currentPage": page,
        "perPage": per_page,
        "items": [serialize(row) for row in rows],
    }


def empty_page(page: int, per_page: int) -> dict:
    return {
        "totalItems": 0,
        "totalPages": 0,
        "currentPage": page,
        "perPage": per_page,
        "items": [],
    }
