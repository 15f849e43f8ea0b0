from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.associations import post_tags
from app.models.common import IntIdMixin, QueryableMixin, TimestampMixin

class Tag(Base, IntIdMixin, TimestampMixin, QueryableMixin):
    __tablename__ = "tags"
    __searchable_fields__ = ("name",)
    __rules__ = {"name": "required|string|max:60|unique:tags,name"}

    name: Mapped[str] = mapped_column(String(60), unique=True, nullable=False)

    posts = relationship("Post", secondary=post_tags, back_populates="tags")
