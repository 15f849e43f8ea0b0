from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.associations import post_tags
from app.models.common import IntIdMixin, QueryableMixin, TimestampMixin

class Post(Base, IntIdMixin, TimestampMixin, QueryableMixin):
    __tablename__ = "posts"
    __searchable_fields__ = ("title", "body")
    __rules__ = {
        "user_id": "required|integer|exists:users,id",
        "title": "required|string|min:3|max:200",
        "body": "nullable|string",
        "is_published": "sometimes|boolean",
        "published_at": "nullable|date",
    }

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    author = relationship("User", back_populates="posts")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")
    tags = relationship("Tag", secondary=post_tags, back_populates="posts")
