import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, contains_eager, joinedload

from consumables.errors import ConflictError, DuplicateError, NotFoundError, ValidationError
from consumables.models.category import Category
from consumables.models.product import Product
from consumables.models.stock import StockItem
from consumables.schemas.product import ProductCreate, ProductUpdate
from consumables.schemas.validation import parse_reference, require_valid
from consumables.services.pagination import page_params, paginate, sort_clause

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "A product with the same name or code already exists"

SORT_FIELDS = {
    "name": Product.name,
    "product_code": Product.product_code,
    "measurement_unit": Product.measurement_unit,
    "reorder_point": Product.reorder_point,
    "category_name": Category.name,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}


def _ensure_unique(db: Session, product_code: str | None, name: str | None, exclude_id: str | None = None) -> None:
    conditions = []
    if product_code is not None:
        conditions.append(Product.product_code == product_code)
    if name is not None:
        conditions.append(Product.name == name)
    if not conditions:
        return
    q = db.query(Product.id).filter(or_(*conditions))
    if exclude_id:
        q = q.filter(Product.id != exclude_id)
    if q.first():
        raise DuplicateError(DUPLICATE_MESSAGE)


def _ensure_category(db: Session, category_id: str | None) -> None:
    if category_id and db.get(Category, category_id) is None:
        raise ValidationError({"category": ["Category not found"]})


def _commit_unique(db: Session) -> None:
    # The unique constraints catch a duplicate that slipped in after the pre-check
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateError(DUPLICATE_MESSAGE)


def create_product(db: Session, payload: Any) -> Product:
    data = require_valid(ProductCreate, payload)
    _ensure_unique(db, data.product_code, data.name)
    _ensure_category(db, data.category)
    product = Product(
        product_code=data.product_code,
        name=data.name,
        category_id=data.category,
        measurement_unit=data.measurement_unit,
        reorder_point=data.reorder_point,
    )
    db.add(product)
    _commit_unique(db)
    db.refresh(product)
    logger.info("Created product %s (%s)", product.product_code, product.id)
    return product


def get_product(db: Session, product_id: str) -> Product:
    ref = parse_reference(product_id)
    product = None
    if ref:
        product = db.query(Product).options(joinedload(Product.category)).filter(Product.id == ref).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def update_product(db: Session, product_id: str, payload: Any) -> Product:
    data = require_valid(ProductUpdate, payload)
    product = get_product(db, product_id)
    changes = data.model_dump(exclude_unset=True)
    if "category" in changes:
        changes["category_id"] = changes.pop("category")
        _ensure_category(db, changes["category_id"])
    _ensure_unique(db, changes.get("product_code"), changes.get("name"), exclude_id=product.id)
    for field, value in changes.items():
        setattr(product, field, value)
    _commit_unique(db)
    db.refresh(product)
    logger.info("Updated product %s fields=%s", product.id, sorted(changes))
    return product


def delete_product(db: Session, product_id: str) -> None:
    """Hard delete, refused once the product has a stock record."""
    product = get_product(db, product_id)
    stock_count = db.query(StockItem).filter(StockItem.product_id == product.id).count()
    if stock_count > 0:
        raise ConflictError("Product cannot be deleted because it already has stock records")
    db.delete(product)
    try:
        db.commit()
    except IntegrityError:
        # A first restock landed between the check and the delete
        db.rollback()
        raise ConflictError("Product cannot be deleted because it already has stock records")
    logger.info("Deleted product %s", product_id)


def list_products(
    db: Session,
    page: int = 1,
    limit: int | None = None,
    sort_by: str = "name",
    order: str = "asc",
    filters: dict | None = None,
) -> dict:
    page, limit = page_params(page, limit)
    filters = filters or {}

    q = db.query(Product).outerjoin(Product.category).options(contains_eager(Product.category))

    search = filters.get("q")
    if search:
        q = q.filter(
            or_(
                Product.name.icontains(search, autoescape=True),
                Product.product_code.icontains(search, autoescape=True),
            )
        )

    category = filters.get("category")
    if category:
        category_ref = parse_reference(category)
        if category_ref is None:
            raise ValidationError({"category": ["Invalid category id"]})
        q = q.filter(Product.category_id == category_ref)

    q = q.order_by(sort_clause(SORT_FIELDS, sort_by, order), Product.id)
    return paginate(q, page, limit)
