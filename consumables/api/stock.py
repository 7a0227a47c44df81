from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from consumables.api.deps import get_actor_id
from consumables.database import get_db
from consumables.schemas.stock import StockItemOut, StockItemPage, StockMovementOut
from consumables.services import stock_service

router = APIRouter(prefix="/stock", tags=["Stock"])


@router.get("", response_model=StockItemPage)
def list_stock(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    sort_by: str = "product.name",
    order: Literal["asc", "desc"] = "asc",
    q: str | None = None,
    low_stock: bool = False,
    db: Session = Depends(get_db),
):
    filters = {"q": q, "low_stock": low_stock}
    return stock_service.list_stock(db, page=page, limit=limit, sort_by=sort_by, order=order, filters=filters)


@router.post("/restock", response_model=StockMovementOut, status_code=201)
def record_restock(
    payload: Any = Body(None),
    actor_id: str | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    movement = stock_service.record_restock(db, payload, actor_id)
    return {"stock_item": movement.stock_item, "log": movement.log}


@router.post("/usage", response_model=StockMovementOut, status_code=201)
def record_usage(
    payload: Any = Body(None),
    actor_id: str | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    movement = stock_service.record_usage(db, payload, actor_id)
    return {"stock_item": movement.stock_item, "log": movement.log}


@router.get("/{stock_item_id}", response_model=StockItemOut)
def get_stock_item(stock_item_id: str, db: Session = Depends(get_db)):
    return stock_service.get_stock_item(db, stock_item_id)
