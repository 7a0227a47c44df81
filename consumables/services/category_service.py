from dataclasses import dataclass

from sqlalchemy.orm import Session

from consumables.errors import NotFoundError
from consumables.models.category import Category
from consumables.schemas.validation import parse_reference


@dataclass(frozen=True)
class CategoryRef:
    id: str
    name: str


def resolve_category(db: Session, category_id: str) -> CategoryRef:
    """Look up a category for display. Categories are managed elsewhere."""
    ref = parse_reference(category_id)
    category = db.get(Category, ref) if ref else None
    if category is None:
        raise NotFoundError("Category not found")
    return CategoryRef(id=category.id, name=category.name)
