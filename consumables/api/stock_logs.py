from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from consumables.database import get_db
from consumables.schemas.stock import StockLogPage
from consumables.services import stock_service

router = APIRouter(prefix="/stock-logs", tags=["Stock Logs"])


@router.get("", response_model=StockLogPage)
def list_logs(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    sort_by: str = "created_at",
    order: Literal["asc", "desc"] = "desc",
    q: str | None = None,
    created_at: str | None = Query(None, description="Day to match, e.g. 2024-05-31"),
    quantity_changed: str | None = None,
    transaction_type: str | None = None,
    person_name: str | None = None,
    person_role: str | None = None,
    notes: str | None = None,
    product_name: str | None = None,
    product_code: str | None = None,
    user_name: str | None = None,
    db: Session = Depends(get_db),
):
    filters = {
        "q": q,
        "created_at": created_at,
        "quantity_changed": quantity_changed,
        "transaction_type": transaction_type,
        "person_name": person_name,
        "person_role": person_role,
        "notes": notes,
        "product_name": product_name,
        "product_code": product_code,
        "user_name": user_name,
    }
    return stock_service.list_logs(db, page=page, limit=limit, sort_by=sort_by, order=order, filters=filters)
