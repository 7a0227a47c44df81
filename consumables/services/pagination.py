import math
from typing import Any

from sqlalchemy.orm import Query

from consumables.config import settings
from consumables.errors import ValidationError


def page_params(page: Any = 1, limit: Any = None) -> tuple[int, int]:
    """Check page/limit and clamp limit to the configured maximum."""
    if limit is None:
        limit = settings.DEFAULT_PAGE_SIZE
    errors: dict[str, list[str]] = {}
    if not isinstance(page, int) or isinstance(page, bool) or page < 1:
        errors["page"] = ["Page must be an integer of at least 1"]
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        errors["limit"] = ["Limit must be an integer of at least 1"]
    if errors:
        raise ValidationError(errors)
    return page, min(limit, settings.MAX_PAGE_SIZE)


def sort_clause(columns: dict, sort_by: str, order: str):
    column = columns.get(sort_by)
    if column is None:
        raise ValidationError({"sort_by": [f"Cannot sort by '{sort_by}'"]})
    if order not in ("asc", "desc"):
        raise ValidationError({"order": ["Order must be 'asc' or 'desc'"]})
    return column.desc() if order == "desc" else column.asc()


def paginate(query: Query, page: int, limit: int) -> dict:
    total_items = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "items": items,
        "pagination": {
            "total_items": total_items,
            "current_page": page,
            "total_pages": math.ceil(total_items / limit),
            "limit": limit,
        },
    }
