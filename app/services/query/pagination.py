from __future__ import annotations

import base64
import binascii
import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

from sqlalchemy import and_, or_

from .errors import InvalidCursor
from .filters import coerce_filter_value
from .sorting import is_nullable, ordered

DIRECTION_NEXT = "next"
DIRECTION_PREV = "prev"


def _default_item(item: Any) -> Any:
    return item


@dataclass
class OffsetPage:
    items: list[Any]
    total: int
    per_page: int
    current_page: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page)) if self.per_page else 1

    def to_dict(self, serializer: Callable[[Any], Any] = _default_item) -> dict[str, Any]:
        return {
            "items": [serializer(item) for item in self.items],
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.current_page,
            "last_page": self.last_page,
        }


@dataclass
class SimplePage:
    items: list[Any]
    has_more: bool
    per_page: int
    current_page: int

    def to_dict(self, serializer: Callable[[Any], Any] = _default_item) -> dict[str, Any]:
        return {
            "items": [serializer(item) for item in self.items],
            "has_more": self.has_more,
            "per_page": self.per_page,
            "current_page": self.current_page,
        }


@dataclass
class CursorPage:
    items: list[Any]
    per_page: int
    next_cursor: str | None = None
    prev_cursor: str | None = None

    def to_dict(self, serializer: Callable[[Any], Any] = _default_item) -> dict[str, Any]:
        return {
            "items": [serializer(item) for item in self.items],
            "per_page": self.per_page,
            "next_cursor": self.next_cursor,
            "prev_cursor": self.prev_cursor,
        }


@dataclass
class Cursor:
    values: dict[str, Any] = field(default_factory=dict)
    direction: str = DIRECTION_NEXT

    @property
    def points_to_previous(self) -> bool:
        return self.direction == DIRECTION_PREV


def _serialize_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    return value


def encode_cursor(values: dict[str, Any], direction: str = DIRECTION_NEXT) -> str:
    payload = {"k": {key: _serialize_value(val) for key, val in values.items()}, "d": direction}
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> Cursor:
    text = str(cursor or "").strip()
    try:
        raw = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError):
        raise InvalidCursor(text)
    if not isinstance(payload, dict) or not isinstance(payload.get("k"), dict):
        raise InvalidCursor(text)
    direction = payload.get("d", DIRECTION_NEXT)
    if direction not in {DIRECTION_NEXT, DIRECTION_PREV}:
        raise InvalidCursor(text)
    return Cursor(values=payload["k"], direction=direction)


def cursor_for(pk_value: Any, sort_column: Any | None, sort_value: Any, pk: Any, direction: str) -> str:
    values = {pk.key: pk_value}
    if sort_column is not None:
        values[sort_column.key] = sort_value
    return encode_cursor(values, direction)


def _cursor_value(column: Any, values: dict[str, Any], raw_cursor: Cursor) -> Any:
    if column.key not in values:
        raise InvalidCursor(json.dumps(raw_cursor.values, default=str))
    value = values[column.key]
    if value is None:
        return None
    if is_computed(column):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidCursor(json.dumps(raw_cursor.values, default=str))
    return coerce_filter_value(column, value)


def is_computed(sort_column: Any | None) -> bool:
    """True for labelled expressions such as relation counts, which are not entity attributes."""
    return sort_column is not None and getattr(sort_column, "property", None) is None


def keyset_predicate(sort_column: Any | None, pk: Any, cursor: Cursor, *, descending: bool):
    """Rows strictly after the cursor position in the scan order given by descending.

    NULL sort values rank below every other value, so they open an ascending
    scan and close a descending one.
    """

    def after(col, value):
        return col < value if descending else col > value

    pk_value = _cursor_value(pk, cursor.values, cursor)
    if sort_column is None:
        return after(pk, pk_value)
    sort_value = _cursor_value(sort_column, cursor.values, cursor)
    if sort_value is None:
        tied = and_(sort_column.is_(None), after(pk, pk_value))
        return tied if descending else or_(sort_column.is_not(None), tied)
    predicate = or_(after(sort_column, sort_value), and_(sort_column == sort_value, after(pk, pk_value)))
    if descending and is_nullable(sort_column):
        predicate = or_(predicate, sort_column.is_(None))
    return predicate


def keyset_ordering(sort_column: Any | None, pk: Any, *, descending: bool) -> list[Any]:
    tie_break = pk.desc() if descending else pk.asc()
    if sort_column is None:
        return [tie_break]
    return [ordered(sort_column, descending), tie_break]


def keyset_page(
    query: Any,
    sort_column: Any | None,
    pk: Any,
    *,
    descending: bool,
    per_page: int,
    cursor: str | None = None,
) -> CursorPage:
    """Run query as one keyset page around cursor; the query must carry no ORDER BY."""
    current = decode_cursor(cursor) if cursor else None
    backwards = current is not None and current.points_to_previous
    # Walking backwards scans in reverse and flips the rows afterwards.
    scan_descending = descending != backwards

    if current is not None:
        query = query.filter(keyset_predicate(sort_column, pk, current, descending=scan_descending))
    computed = is_computed(sort_column)
    if computed:
        query = query.add_columns(sort_column)
    rows = query.order_by(*keyset_ordering(sort_column, pk, descending=scan_descending)).limit(per_page + 1).all()

    has_more = len(rows) > per_page
    rows = rows[:per_page]
    if backwards:
        rows.reverse()
    if computed:
        items = [row[0] for row in rows]
        sort_values = [row[1] for row in rows]
    else:
        items = rows
        sort_values = [getattr(row, sort_column.key) if sort_column is not None else None for row in rows]

    def edge(index: int, direction: str) -> str:
        return cursor_for(getattr(items[index], pk.key), sort_column, sort_values[index], pk, direction)

    next_cursor = prev_cursor = None
    if items:
        if backwards:
            next_cursor = edge(-1, DIRECTION_NEXT)
            if has_more:
                prev_cursor = edge(0, DIRECTION_PREV)
        else:
            if has_more:
                next_cursor = edge(-1, DIRECTION_NEXT)
            if current is not None:
                prev_cursor = edge(0, DIRECTION_PREV)
    return CursorPage(items=items, per_page=per_page, next_cursor=next_cursor, prev_cursor=prev_cursor)
