from datetime import date

from sqlalchemy import Boolean, Date, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.common import IntIdMixin, QueryableMixin, TimestampMixin

class User(Base, IntIdMixin, TimestampMixin, QueryableMixin):
    __tablename__ = "users"
    __searchable_fields__ = ("name", "email")
    __morph_type__ = "User"
    __rules__ = {
        "name": "required|string|max:120",
        "email": "required|email|unique:users,email",
        "is_active": "sometimes|boolean",
        "date_of_birth": "nullable|date",
    }
    __messages__ = {
        "email.unique": "This email address is already registered.",
    }

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    posts = relationship("Post", back_populates="author", cascade="all, delete-orphan")
