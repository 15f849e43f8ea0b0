from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base
from app.models.common import IntIdMixin, QueryableMixin, TimestampMixin

class Comment(Base, IntIdMixin, TimestampMixin, QueryableMixin):
    __tablename__ = "comments"
    __searchable_fields__ = ("body",)
    __rules__ = {
        "post_id": "required|integer|exists:posts,id",
        "body": "required|string|max:2000",
        "is_featured": "sometimes|boolean",
    }

    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    post = relationship("Post", back_populates="comments")
