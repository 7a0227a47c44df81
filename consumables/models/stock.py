import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from consumables.database import Base
from consumables.models.product import Product
from consumables.models.user import User


class TransactionType(str, PyEnum):
    ADDITION = "addition"
    WITHDRAWAL = "withdrawal"


class StockItem(Base):
    """Current on-hand balance for one product.

    Only the stock mutation engine writes ``quantity``. ``version`` is bumped on
    every update so a write based on a stale read fails instead of losing an
    update made by a concurrent request.
    """

    __tablename__ = "consumable_stock"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id: Mapped[str] = mapped_column(String, ForeignKey("consumable_products.id"), unique=True, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Unit in force when tracking began; may drift from Product.measurement_unit
    unit: Mapped[str] = mapped_column(String, default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    product: Mapped[Product] = relationship(Product)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.product.reorder_point


class StockLog(Base):
    """Append-only record of every balance change. Never updated or deleted."""

    __tablename__ = "consumable_logs"
    __table_args__ = (CheckConstraint("quantity_changed >= 1", name="ck_log_quantity_positive"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    stock_item_id: Mapped[str] = mapped_column(String, ForeignKey("consumable_stock.id"), index=True, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    # Magnitude only; the direction comes from transaction_type
    quantity_changed: Mapped[int] = mapped_column(Integer, nullable=False)
    person_name: Mapped[str] = mapped_column(String, nullable=False)
    person_role: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, ForeignKey("users.id"), nullable=True)
    # Local wall-clock time, matching the day filters on the log listing
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True, nullable=False)

    stock_item: Mapped[StockItem] = relationship(StockItem)
    user: Mapped[User | None] = relationship(User)

    @property
    def product_name(self) -> str:
        return self.stock_item.product.name

    @property
    def product_code(self) -> str:
        return self.stock_item.product.product_code

    @property
    def user_name(self) -> str | None:
        if self.user is None:
            return None
        return self.user.display_name or self.user.username

    @property
    def signed_change(self) -> int:
        if self.transaction_type == TransactionType.WITHDRAWAL:
            return -self.quantity_changed
        return self.quantity_changed
