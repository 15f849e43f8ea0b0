from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.associations import role_has_permissions
from app.models.common import IntIdMixin, QueryableMixin, TimestampMixin

class Role(Base, IntIdMixin, TimestampMixin, QueryableMixin):
    __tablename__ = "roles"
    __searchable_fields__ = ("name",)
    __rules__ = {
        "name": ["required", "string", "max:100", "unique:roles,name"],
        "guard_name": "sometimes|string|in:web,api",
    }

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    guard_name: Mapped[str] = mapped_column(String(40), default="web", nullable=False)

    permissions = relationship("Permission", secondary=role_has_permissions, back_populates="roles")
