import uuid
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import column as sa_column
from sqlalchemy import false, true
from sqlalchemy.orm import Query

from .entities import EntityRegistry, boolean_fields, column_attribute, date_fields
from .errors import InvalidFilterValue
from .relations import PivotNaming, apply_relation

RELATION_KEY = "relation"
_TRUTHY = {"1", "true", "on", "yes", "y"}


def parse_bool(value: Any) -> bool:
    """Permissive boolean parsing: recognised truthy spellings are True, anything else False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value or "").strip().lower() in _TRUTHY


def _parse_number(key: str, value: Any, python_type: type):
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        # Decimal commas are accepted.
        value = str(value).strip().replace(",", ".")
    try:
        return python_type(value)
    except (ValueError, TypeError, InvalidOperation):
        raise InvalidFilterValue(key, "number")


def _parse_temporal(key: str, value: Any, kind: str):
    """Read a date or datetime from an ISO string; kind picks which one comes back.

    Bare dates become midnight for datetime columns, and datetimes keep only
    their day for date columns. A trailing Z means UTC.
    """
    as_datetime = kind == "datetime"
    if isinstance(value, datetime):
        return value if as_datetime else value.date()
    if isinstance(value, date):
        return datetime.combine(value, time.min) if as_datetime else value
    text = str(value or "").strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            return datetime.combine(day, time.min) if as_datetime else day
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidFilterValue(key, kind)
    return moment if as_datetime else moment.date()


def coerce_filter_value(column, value):
    try:
        python_type = column.property.columns[0].type.python_type
    except (AttributeError, NotImplementedError, IndexError):
        return value
    if python_type is bool:
        return parse_bool(value)
    if python_type in {int, float, Decimal}:
        return _parse_number(column.key, value, python_type)
    if python_type is datetime:
        return _parse_temporal(column.key, value, "datetime")
    if python_type is date:
        return _parse_temporal(column.key, value, "date")
    if python_type is uuid.UUID and not isinstance(value, uuid.UUID):
        try:
            return uuid.UUID(str(value or "").strip())
        except ValueError:
            raise InvalidFilterValue(column.key, "uuid")
    return value


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _date_range_predicate(column, key: str, bounds: list | tuple):
    start = bounds[0] if len(bounds) > 0 else None
    end = bounds[1] if len(bounds) > 1 else None
    if not _is_empty(start) and not _is_empty(end):
        return column.between(coerce_filter_value(column, start), coerce_filter_value(column, end))
    if not _is_empty(start):
        return column == coerce_filter_value(column, start)
    # An upper bound on its own is not supported and adds no predicate.
    return None


def apply_filters(
    query: Query,
    model: type,
    filters: dict[str, Any] | None,
    *,
    registry: EntityRegistry,
    pivots: PivotNaming | None = None,
) -> Query:
    if not filters:
        return query

    booleans = boolean_fields(model)
    dates = date_fields(model)

    for key, value in filters.items():
        if key == RELATION_KEY or _is_empty(value):
            continue
        column = column_attribute(model, key)

        if key in booleans:
            target = column if column is not None else sa_column(key)
            query = query.filter(target.is_(true() if parse_bool(value) else false()))
            continue

        if isinstance(value, (list, tuple)):
            if key in dates and column is not None:
                predicate = _date_range_predicate(column, key, value)
                if predicate is not None:
                    query = query.filter(predicate)
                continue
            values = [v for v in value if not _is_empty(v)]
            if not values:
                continue
            if column is not None:
                query = query.filter(column.in_([coerce_filter_value(column, v) for v in values]))
            else:
                query = query.filter(sa_column(key).in_(values))
            continue

        if column is None:
            # Not a mapped column: passed through untouched for the database to judge.
            query = query.filter(sa_column(key) == value)
        else:
            query = query.filter(column == coerce_filter_value(column, value))

    relation = filters.get(RELATION_KEY)
    if not _is_empty(relation):
        query = apply_relation(query, model, relation, registry=registry, pivots=pivots)
    return query
