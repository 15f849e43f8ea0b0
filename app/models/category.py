from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.common import IntIdMixin, QueryableMixin, TimestampMixin

class Category(Base, IntIdMixin, TimestampMixin, QueryableMixin):
    __tablename__ = "categories"
    __searchable_fields__ = ("name", "slug")
    __rules__ = {
        "name": "required|string|max:120",
        "slug": "required|string|max:120|unique:categories,slug",
        "parent_id": "nullable|integer|exists:categories,id",
        "is_active": "sometimes|boolean",
    }

    parent_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    children = relationship("Category", back_populates="parent")
    parent = relationship("Category", back_populates="children", remote_side="Category.id")
