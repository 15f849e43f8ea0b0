import logging
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy import column as sa_column
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Query

from app.schemas.query import SortDirective

from .entities import column_attribute, primary_key_column

_LOG = logging.getLogger("app.query")

COUNT_SUFFIX = "_count"


def relation_count_expression(model: type, relation_name: str):
    """Correlated COUNT(*) of rows related to the outer row through relation_name, or None."""
    relationship = sa_inspect(model).relationships.get(relation_name)
    if relationship is None:
        return None
    own_table = model.__table__
    if relationship.secondary is not None:
        source = relationship.secondary
        condition = and_(
            *(
                local == remote
                for local, remote in relationship.local_remote_pairs
                if local.table is own_table and remote.table is source
            )
        )
    else:
        # Aliased so self-referential relations do not collapse onto the outer table.
        source = relationship.mapper.local_table.alias()
        condition = and_(
            *(local == source.c[remote.key] for local, remote in relationship.local_remote_pairs)
        )
    return (
        select(func.count())
        .select_from(source)
        .where(condition)
        .correlate(own_table)
        .scalar_subquery()
        .label(f"{relation_name}{COUNT_SUFFIX}")
    )


def sort_expression(model: type, field: str) -> Any:
    if field.endswith(COUNT_SUFFIX):
        expression = relation_count_expression(model, field[: -len(COUNT_SUFFIX)])
        if expression is not None:
            return expression
    column = column_attribute(model, field)
    # Unknown names sort on the literal column name.
    return column if column is not None else sa_column(field)


def is_nullable(expression: Any) -> bool:
    prop = getattr(expression, "property", None)
    columns = getattr(prop, "columns", None)
    return bool(columns) and bool(columns[0].nullable)


def ordered(expression: Any, descending: bool) -> Any:
    """ORDER BY clause treating NULL as the lowest value in either direction."""
    if descending:
        clause = expression.desc()
        return clause.nulls_last() if is_nullable(expression) else clause
    clause = expression.asc()
    return clause.nulls_first() if is_nullable(expression) else clause


def apply_sorting(query: Query, model: type, directive: SortDirective | None = None) -> Query:
    directive = directive or SortDirective()
    field = directive.field or "id"
    descending = directive.direction == "desc"
    query = query.order_by(ordered(sort_expression(model, field), descending))
    pk = primary_key_column(model)
    if field != pk.key:
        query = query.order_by(pk.desc() if descending else pk.asc())
    _LOG.debug("sort applied model=%s field=%s direction=%s", model.__name__, field, directive.direction)
    return query


def keyset_columns(model: type, directive: SortDirective | None = None) -> tuple[Any | None, Any, bool]:
    """(sort expression or None, primary key, descending) for keyset pagination.

    The sort expression is a mapped column or a labelled relation count; unknown
    fields page by primary key.
    """
    directive = directive or SortDirective()
    pk = primary_key_column(model)
    field = directive.field or pk.key
    descending = directive.direction == "desc"
    if field == pk.key:
        return None, pk, descending
    if field.endswith(COUNT_SUFFIX):
        expression = relation_count_expression(model, field[: -len(COUNT_SUFFIX)])
        if expression is not None:
            return expression, pk, descending
    return column_attribute(model, field), pk, descending
