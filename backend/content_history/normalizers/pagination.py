# content_history/normalizers/pagination.py
from typing import Callable, Any, Sequence, Dict


def normalize_page_of(
    items: Sequence[Any],
    normalize_fn: Callable[[Any], Dict[str, Any]],
    *,
    page: int,
    per_page: int,
) -> Dict[str, Any]:
    """
    Slice one page out of a full, already ordered result list and normalize it.

    Version histories are small enough per page name to be listed in full,
    so offsets are applied in memory.
    """
    total = len(items)
    start = (page - 1) * per_page

    return {
        "items": [normalize_fn(item) for item in items[start:start + per_page]],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": (total + per_page - 1) // per_page,
            "has_more": page * per_page < total,
        },
    }
