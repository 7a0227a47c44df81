from datetime import datetime

from pydantic import BaseModel

from consumables.models.stock import TransactionType
from consumables.schemas.common import Pagination
from consumables.schemas.validation import OptionalText, PersonName, ProductRef, Quantity, StockItemRef


class RestockCreate(BaseModel):
    product_id: ProductRef
    quantity_added: Quantity
    person_name: PersonName
    person_role: OptionalText = None
    notes: OptionalText = None
    # Only used when this restock starts tracking the product
    unit: OptionalText = None


class UsageCreate(BaseModel):
    stock_item_id: StockItemRef
    quantity_taken: Quantity
    person_name: PersonName
    person_role: OptionalText = None
    notes: OptionalText = None


class StockProductOut(BaseModel):
    id: str
    name: str
    product_code: str
    measurement_unit: str
    reorder_point: int

    model_config = {"from_attributes": True}


class StockItemOut(BaseModel):
    id: str
    product_id: str
    quantity: int
    unit: str
    is_low_stock: bool
    product: StockProductOut
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StockLogOut(BaseModel):
    id: str
    stock_item_id: str
    transaction_type: TransactionType
    quantity_changed: int
    person_name: str
    person_role: str | None = None
    notes: str | None = None
    user_id: str | None = None
    user_name: str | None = None
    product_name: str = ""
    product_code: str = ""
    created_at: datetime

    model_config = {"from_attributes": True}


class StockMovementOut(BaseModel):
    stock_item: StockItemOut
    log: StockLogOut

    model_config = {"from_attributes": True}


class StockItemPage(BaseModel):
    items: list[StockItemOut]
    pagination: Pagination


class StockLogPage(BaseModel):
    items: list[StockLogOut]
    pagination: Pagination
