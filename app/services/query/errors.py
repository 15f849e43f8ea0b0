from __future__ import annotations

from typing import Any


class QueryError(Exception):
    """Base class for faults raised while building or running a query."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message}
        if self.context:
            payload["context"] = {key: str(value) for key, value in self.context.items()}
        return payload


class MalformedRelationDescriptor(QueryError):
    def __init__(self, descriptor: Any, reason: str) -> None:
        super().__init__(f"Malformed relation descriptor {descriptor!r}: {reason}", descriptor=descriptor)
        self.descriptor = descriptor


class UnresolvedPolymorphicType(QueryError):
    def __init__(self, table_name: str) -> None:
        super().__init__(f"Table does not exist: {table_name}", table=table_name)
        self.table_name = table_name


class InvalidFilterValue(QueryError):
    def __init__(self, field: str, kind: str) -> None:
        super().__init__(f'Invalid filter value for field "{field}" ({kind})', field=field, kind=kind)
        self.field = field
        self.kind = kind


class InvalidCursor(QueryError):
    def __init__(self, cursor: str) -> None:
        super().__init__("Invalid pagination cursor", cursor=cursor)
        self.cursor = cursor


class UnsupportedEntity(QueryError):
    def __init__(self, entity: Any) -> None:
        name = getattr(entity, "__name__", None) or str(entity)
        super().__init__(f"No query driver supports entity {name}", entity=name)


class ValidationFailed(Exception):
    """Declared rules rejected the input; field_errors maps field -> messages."""

    def __init__(self, field_errors: dict[str, list[str]]) -> None:
        first = next(iter(field_errors.values()), ["The given data was invalid."])
        super().__init__(first[0] if first else "The given data was invalid.")
        self.field_errors = field_errors

    def to_dict(self) -> dict[str, Any]:
        return {"detail": str(self), "errors": self.field_errors}
