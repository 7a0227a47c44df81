"""Stock ledger, transaction log and the restock/usage mutation engine.

Every balance change goes through :func:`record_restock` or
:func:`record_usage`. Each runs as one atomic unit: the stock row is re-read
(locked where the store supports it), checked, updated and a log row appended,
then everything commits together or not at all. Stock rows carry a version
counter, so a write based on a stale read fails and the unit is retried from
the top instead of silently losing a concurrent update.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session, contains_eager

from consumables.database import run_atomic
from consumables.errors import InsufficientStockError, NotFoundError, ValidationError
from consumables.models.product import Product
from consumables.models.stock import StockItem, StockLog, TransactionType
from consumables.models.user import User
from consumables.schemas.stock import RestockCreate, UsageCreate
from consumables.schemas.validation import parse_reference, require_valid
from consumables.services.pagination import page_params, paginate, sort_clause

logger = logging.getLogger(__name__)

STOCK_SORT_FIELDS = {
    "product.name": Product.name,
    "product.product_code": Product.product_code,
    "product.measurement_unit": Product.measurement_unit,
    "product.reorder_point": Product.reorder_point,
    "quantity": StockItem.quantity,
    "unit": StockItem.unit,
    "created_at": StockItem.created_at,
    "updated_at": StockItem.updated_at,
}

LOG_SORT_FIELDS = {
    "created_at": StockLog.created_at,
    "transaction_type": StockLog.transaction_type,
    "quantity_changed": StockLog.quantity_changed,
    "person_name": StockLog.person_name,
    "person_role": StockLog.person_role,
    "notes": StockLog.notes,
    "product_name": Product.name,
    "product_code": Product.product_code,
    "user_name": User.display_name,
}

# Column filters on the log listing matched as case-insensitive substrings
LOG_TEXT_FILTERS = {
    "person_name": StockLog.person_name,
    "person_role": StockLog.person_role,
    "notes": StockLog.notes,
    "product_name": Product.name,
    "product_code": Product.product_code,
    "user_name": User.display_name,
}


@dataclass
class StockMovement:
    stock_item: StockItem
    log: StockLog


# --- Read side ---

def get_stock_item(db: Session, stock_item_id: str) -> StockItem:
    ref = parse_reference(stock_item_id)
    stock_item = None
    if ref:
        stock_item = (
            db.query(StockItem)
            .join(StockItem.product)
            .options(contains_eager(StockItem.product))
            .filter(StockItem.id == ref)
            .first()
        )
    if stock_item is None:
        raise NotFoundError("Stock item not found")
    return stock_item


def list_stock(
    db: Session,
    page: int = 1,
    limit: int | None = None,
    sort_by: str = "product.name",
    order: str = "asc",
    filters: dict | None = None,
) -> dict:
    page, limit = page_params(page, limit)
    filters = filters or {}

    q = db.query(StockItem).join(StockItem.product).options(contains_eager(StockItem.product))

    search = filters.get("q")
    if search:
        q = q.filter(
            or_(
                Product.name.icontains(search, autoescape=True),
                Product.product_code.icontains(search, autoescape=True),
            )
        )
    if filters.get("low_stock"):
        q = q.filter(StockItem.quantity <= Product.reorder_point)

    q = q.order_by(sort_clause(STOCK_SORT_FIELDS, sort_by, order), StockItem.id)
    return paginate(q, page, limit)


def _day_bounds(value: Any) -> tuple[datetime, datetime]:
    """Local start and end of the day named by ``value``."""
    if isinstance(value, datetime):
        day = value.astimezone().date() if value.tzinfo else value.date()
    elif isinstance(value, date):
        day = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise ValidationError({"created_at": ["Invalid date"]})
        day = parsed.astimezone().date() if parsed.tzinfo else parsed.date()
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def _log_filter_conditions(filters: dict) -> list:
    conditions = []

    search = filters.get("q")
    if search:
        conditions.append(
            or_(
                Product.name.icontains(search, autoescape=True),
                StockLog.person_name.icontains(search, autoescape=True),
                StockLog.notes.icontains(search, autoescape=True),
                User.display_name.icontains(search, autoescape=True),
            )
        )

    for key, value in filters.items():
        if key == "q" or value is None or value == "":
            continue
        if key == "created_at":
            start, end = _day_bounds(value)
            conditions.append(StockLog.created_at.between(start, end))
        elif key == "quantity_changed":
            try:
                quantity = int(value)
            except (TypeError, ValueError):
                continue
            conditions.append(StockLog.quantity_changed == quantity)
        elif key == "transaction_type":
            try:
                transaction_type = TransactionType(str(value).lower())
            except ValueError:
                raise ValidationError({"transaction_type": ["Must be 'addition' or 'withdrawal'"]})
            conditions.append(StockLog.transaction_type == transaction_type)
        elif key in LOG_TEXT_FILTERS:
            conditions.append(LOG_TEXT_FILTERS[key].icontains(str(value), autoescape=True))
        else:
            logger.debug("Ignoring unknown log filter %r", key)
    return conditions


def list_logs(
    db: Session,
    page: int = 1,
    limit: int | None = None,
    sort_by: str = "created_at",
    order: str = "desc",
    filters: dict | None = None,
) -> dict:
    page, limit = page_params(page, limit)

    q = (
        db.query(StockLog)
        .join(StockLog.stock_item)
        .join(StockItem.product)
        .outerjoin(StockLog.user)
        .options(
            contains_eager(StockLog.stock_item).contains_eager(StockItem.product),
            contains_eager(StockLog.user),
        )
    )
    conditions = _log_filter_conditions(filters or {})
    if conditions:
        q = q.filter(*conditions)

    q = q.order_by(sort_clause(LOG_SORT_FIELDS, sort_by, order), StockLog.id)
    return paginate(q, page, limit)


def stock_history_balance(db: Session, stock_item_id: str) -> int:
    """Replay the log of one stock item from zero, oldest first."""
    stock_item = get_stock_item(db, stock_item_id)
    logs = (
        db.query(StockLog)
        .filter(StockLog.stock_item_id == stock_item.id)
        .order_by(StockLog.created_at.asc(), StockLog.id)
        .all()
    )
    return sum(log.signed_change for log in logs)


# --- Mutation engine ---

def _lock_stock_item(db: Session, *criteria) -> StockItem | None:
    return (
        db.query(StockItem)
        .filter(*criteria)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _append_log(
    db: Session,
    stock_item: StockItem,
    transaction_type: TransactionType,
    quantity: int,
    data: RestockCreate | UsageCreate,
    actor_id: str | None,
) -> StockLog:
    log = StockLog(
        stock_item=stock_item,
        transaction_type=transaction_type,
        quantity_changed=quantity,
        person_name=data.person_name,
        person_role=data.person_role,
        notes=data.notes,
        user_id=actor_id,
        created_at=datetime.now(),
    )
    db.add(log)
    db.flush()
    return log


def _ensure_actor(db: Session, actor_id: str | None) -> None:
    if actor_id and db.get(User, actor_id) is None:
        raise NotFoundError("Actor not found")


def record_restock(db: Session, payload: Any, actor_id: str | None = None) -> StockMovement:
    """Add stock for a product, starting its stock record on the first restock."""
    data = require_valid(RestockCreate, payload)

    def restock() -> StockMovement:
        _ensure_actor(db, actor_id)
        product = db.query(Product).filter(Product.id == data.product_id).first()
        if product is None:
            raise NotFoundError("Product not found")

        stock_item = _lock_stock_item(db, StockItem.product_id == product.id)
        if stock_item is None:
            stock_item = StockItem(
                product_id=product.id,
                quantity=0,
                unit=data.unit or product.measurement_unit,
            )
            db.add(stock_item)
        stock_item.quantity += data.quantity_added
        db.flush()

        log = _append_log(db, stock_item, TransactionType.ADDITION, data.quantity_added, data, actor_id)
        return StockMovement(stock_item=stock_item, log=log)

    movement = run_atomic(db, restock, label="restock")
    logger.info(
        "Restocked %s +%d by %s (balance %d)",
        movement.stock_item.id,
        data.quantity_added,
        data.person_name,
        movement.stock_item.quantity,
    )
    return movement


def record_usage(db: Session, payload: Any, actor_id: str | None = None) -> StockMovement:
    """Withdraw stock; never creates a stock record and never goes below zero."""
    data = require_valid(UsageCreate, payload)

    def use() -> StockMovement:
        _ensure_actor(db, actor_id)
        stock_item = _lock_stock_item(db, StockItem.id == data.stock_item_id)
        if stock_item is None:
            raise NotFoundError("Stock item not found")
        if stock_item.quantity < data.quantity_taken:
            logger.info(
                "Rejected usage of %d from %s: only %d in stock",
                data.quantity_taken,
                stock_item.id,
                stock_item.quantity,
            )
            raise InsufficientStockError(stock_item.quantity, data.quantity_taken)
        stock_item.quantity -= data.quantity_taken
        db.flush()

        log = _append_log(db, stock_item, TransactionType.WITHDRAWAL, data.quantity_taken, data, actor_id)
        return StockMovement(stock_item=stock_item, log=log)

    movement = run_atomic(db, use, label="usage")
    logger.info(
        "Used %d from %s by %s (balance %d)",
        data.quantity_taken,
        movement.stock_item.id,
        data.person_name,
        movement.stock_item.quantity,
    )
    return movement
