from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Mapped, mapped_column

def utcnow():
    return datetime.now(timezone.utc)

class IntIdMixin:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

class QueryableMixin:
    """Schema metadata read by the query engine.

    Boolean and date field sets are derived from column types unless the
    entity declares them explicitly.
    """

    __searchable_fields__: tuple[str, ...] = ()
    __boolean_fields__: tuple[str, ...] | None = None
    __date_fields__: tuple[str, ...] | None = None
    __morph_type__: str | None = None
    __rules__: dict[str, Any] = {}
    __messages__: dict[str, str] = {}

    @classmethod
    def searchable_fields(cls) -> list[str]:
        return list(cls.__searchable_fields__)

    @classmethod
    def boolean_fields(cls) -> set[str]:
        if cls.__boolean_fields__ is not None:
            return set(cls.__boolean_fields__)
        return {column.key for column in sa_inspect(cls).columns if isinstance(column.type, Boolean)}

    @classmethod
    def date_fields(cls) -> set[str]:
        if cls.__date_fields__ is not None:
            return set(cls.__date_fields__)
        return {column.key for column in sa_inspect(cls).columns if isinstance(column.type, (Date, DateTime))}

    @classmethod
    def morph_type(cls) -> str:
        return cls.__morph_type__ or cls.__name__
