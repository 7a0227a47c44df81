from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from consumables.database import get_db
from consumables.schemas.product import ProductOut, ProductPage
from consumables.services import product_service

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", response_model=ProductOut, status_code=201)
def create_product(payload: Any = Body(None), db: Session = Depends(get_db)):
    return product_service.create_product(db, payload)


@router.get("", response_model=ProductPage)
def list_products(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    sort_by: str = "name",
    order: Literal["asc", "desc"] = "asc",
    q: str | None = None,
    category: str | None = None,
    db: Session = Depends(get_db),
):
    filters = {"q": q, "category": category}
    return product_service.list_products(db, page=page, limit=limit, sort_by=sort_by, order=order, filters=filters)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return product_service.get_product(db, product_id)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, payload: Any = Body(None), db: Session = Depends(get_db)):
    return product_service.update_product(db, product_id, payload)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    product_service.delete_product(db, product_id)
