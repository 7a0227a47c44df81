import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consumables.database import Base
from consumables.models.category import Category


class Product(Base):
    __tablename__ = "consumable_products"
    __table_args__ = (CheckConstraint("reorder_point >= 1", name="ck_product_reorder_point"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    product_code: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    category_id: Mapped[str | None] = mapped_column(String, ForeignKey("categories.id"), nullable=True)
    measurement_unit: Mapped[str] = mapped_column(String, nullable=False)
    # Minimum stock threshold, informational only
    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    category: Mapped[Category | None] = relationship(Category)

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None
