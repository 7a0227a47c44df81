import uuid

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from consumables.database import Base


class Category(Base):
    """Product category. Owned by the category module, only read here."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
