from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.associations import role_has_permissions
from app.models.common import IntIdMixin, QueryableMixin, TimestampMixin

class Permission(Base, IntIdMixin, TimestampMixin, QueryableMixin):
    __tablename__ = "permissions"
    __searchable_fields__ = ("name",)
    __rules__ = {"name": "required|string|max:100|unique:permissions,name"}

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    roles = relationship("Role", secondary=role_has_permissions, back_populates="permissions")
