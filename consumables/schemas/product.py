from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, field_validator
from pydantic_core import PydanticCustomError

from consumables.schemas.common import Pagination
from consumables.schemas.validation import CategoryRef, Quantity, RequiredText, required

ProductCode = Annotated[RequiredText, required("Product code is required")]
ProductName = Annotated[RequiredText, required("Product name is required")]
MeasurementUnit = Annotated[RequiredText, required("Measurement unit is required")]


class ProductCreate(BaseModel):
    product_code: ProductCode
    name: ProductName
    category: CategoryRef
    measurement_unit: MeasurementUnit
    reorder_point: Quantity


class ProductUpdate(BaseModel):
    """Partial update: omitted fields are left alone, supplied ones are validated."""

    product_code: ProductCode | None = None
    name: ProductName | None = None
    category: CategoryRef | None = None
    measurement_unit: MeasurementUnit | None = None
    reorder_point: Quantity | None = None

    @field_validator("*")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise PydanticCustomError("not_null", "Field may be omitted but not set to null")
        return v


class ProductOut(BaseModel):
    id: str
    product_code: str
    name: str
    category_id: str | None
    category_name: str | None = None
    measurement_unit: str
    reorder_point: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductPage(BaseModel):
    items: list[ProductOut]
    pagination: Pagination
