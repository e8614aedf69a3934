"""List pagination - Pure functions.

Sorting and slicing of API list responses.
"""

import math
from dataclasses import dataclass
from typing import Any


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 16
DEFAULT_SORT = "name"


@dataclass(frozen=True)
class Page:
    """One page of a sorted list.

    Attributes:
        items: Items on this page
        current_page: 1-based page number
        total_pages: Number of pages (0 for an empty list)
        total: Number of items across all pages
    """
    items: list[dict[str, Any]]
    current_page: int
    total_pages: int
    total: int


def _sort_key(field: str):
    def key(item: dict[str, Any]) -> tuple:
        value = item.get(field)
        # Missing values sort last in ascending order
        if value is None:
            return (1, "")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (0, value)
        return (0, str(value))
    return key


def paginate(
    items: list[dict[str, Any]],
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    sort: str = DEFAULT_SORT,
    direction: str = "asc",
) -> Page:
    """Sort and slice a list of documents.

    Pure function.

    Args:
        items: Documents to paginate
        page: 1-based page number (values below 1 are treated as 1)
        limit: Items per page (values below 1 fall back to the default)
        sort: Field to sort by
        direction: 'asc' or 'desc'

    Returns:
        Page
    """
    page = max(page, 1)
    if limit < 1:
        limit = DEFAULT_LIMIT

    try:
        ordered = sorted(items, key=_sort_key(sort), reverse=direction == "desc")
    except TypeError:
        ordered = sorted(
            items,
            key=lambda item: str(item.get(sort, "")),
            reverse=direction == "desc",
        )

    total = len(ordered)
    start = (page - 1) * limit

    return Page(
        items=ordered[start:start + limit],
        current_page=page,
        total_pages=math.ceil(total / limit),
        total=total,
    )
