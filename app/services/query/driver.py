from __future__ import annotations

import logging
from typing import Any, Iterable, Protocol

from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Query, Session

from app.core.config import settings
from app.schemas.query import SearchOptions

from .entities import EntityRegistry, load_entity_registry, searchable_fields
from .errors import UnsupportedEntity
from .filters import apply_filters
from .pagination import CursorPage, OffsetPage, SimplePage, keyset_page
from .relations import PivotNaming
from .search import MATCH_PARTIAL, apply_search, build_search_clause
from .sorting import apply_sorting, keyset_columns

_LOG = logging.getLogger("app.query")


class QueryDriver(Protocol):
    name: str

    def supports(self, model: type) -> bool:
        ...

    def paginate(
        self,
        model: type,
        filters: dict[str, Any] | None = None,
        options: SearchOptions | None = None,
        per_page: int | None = None,
        page: int = 1,
    ) -> OffsetPage:
        ...

    def simple_paginate(
        self,
        model: type,
        filters: dict[str, Any] | None = None,
        options: SearchOptions | None = None,
        per_page: int | None = None,
        page: int = 1,
    ) -> SimplePage:
        ...

    def cursor_paginate(
        self,
        model: type,
        filters: dict[str, Any] | None = None,
        options: SearchOptions | None = None,
        per_page: int | None = None,
        cursor: str | None = None,
    ) -> CursorPage:
        ...

    def search(self, model: type, term: str, fields: list[str] | None = None, filters: dict[str, Any] | None = None) -> list[Any]:
        ...

    def all(self, model: type, filters: dict[str, Any] | None = None) -> list[Any]:
        ...


class DatabaseQueryDriver:
    """Query driver backed by the relational database through a SQLAlchemy session."""

    name = "database"

    def __init__(self, db: Session, registry: EntityRegistry | None = None, pivots: PivotNaming | None = None):
        self.db = db
        self.registry = registry or load_entity_registry()
        self.pivots = pivots or PivotNaming()

    def supports(self, model: type) -> bool:
        return isinstance(model, type) and sa_inspect(model, raiseerr=False) is not None

    def base_query(self, model: type) -> Query:
        return self.db.query(model)

    def apply_filters(self, query: Query, model: type, filters: dict[str, Any] | None) -> Query:
        return apply_filters(query, model, filters, registry=self.registry, pivots=self.pivots)

    def build_query(
        self,
        model: type,
        filters: dict[str, Any] | None = None,
        options: SearchOptions | None = None,
        *,
        with_sort: bool = True,
    ) -> Query:
        options = options or SearchOptions()
        query = self.apply_filters(self.base_query(model), model, filters)
        if options.term:
            fields = options.fields or searchable_fields(model)
            query = apply_search(query, model, options.term, options, fields)
        if with_sort:
            query = apply_sorting(query, model, options.sort)
        return query

    def paginate(
        self,
        model: type,
        filters: dict[str, Any] | None = None,
        options: SearchOptions | None = None,
        per_page: int | None = None,
        page: int = 1,
    ) -> OffsetPage:
        per_page = settings.clamp_per_page(per_page)
        page = max(1, int(page or 1))
        query = self.build_query(model, filters, options)
        total = query.order_by(None).count()
        items = query.offset((page - 1) * per_page).limit(per_page).all()
        return OffsetPage(items=items, total=total, per_page=per_page, current_page=page)

    def simple_paginate(
        self,
        model: type,
        filters: dict[str, Any] | None = None,
        options: SearchOptions | None = None,
        per_page: int | None = None,
        page: int = 1,
    ) -> SimplePage:
        per_page = settings.clamp_per_page(per_page)
        page = max(1, int(page or 1))
        query = self.build_query(model, filters, options)
        rows = query.offset((page - 1) * per_page).limit(per_page + 1).all()
        return SimplePage(items=rows[:per_page], has_more=len(rows) > per_page, per_page=per_page, current_page=page)

    def cursor_paginate(
        self,
        model: type,
        filters: dict[str, Any] | None = None,
        options: SearchOptions | None = None,
        per_page: int | None = None,
        cursor: str | None = None,
    ) -> CursorPage:
        options = options or SearchOptions()
        per_page = settings.clamp_per_page(per_page)
        sort_column, pk, descending = keyset_columns(model, options.sort)
        query = self.build_query(model, filters, options, with_sort=False)
        return keyset_page(query, sort_column, pk, descending=descending, per_page=per_page, cursor=cursor)

    def search(
        self,
        model: type,
        term: str,
        fields: list[str] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[Any]:
        query = self.base_query(model)
        clause = build_search_clause(model, term, fields or searchable_fields(model), match_type=MATCH_PARTIAL, split_terms=False)
        if clause is not None:
            query = query.filter(clause)
        query = self.apply_filters(query, model, filters)
        return query.all()

    def all(self, model: type, filters: dict[str, Any] | None = None) -> list[Any]:
        return self.apply_filters(self.base_query(model), model, filters).all()


def select_driver(drivers: Iterable[QueryDriver], model: type) -> QueryDriver:
    for driver in drivers:
        if driver.supports(model):
            _LOG.debug("query driver selected name=%s model=%s", driver.name, getattr(model, "__name__", model))
            return driver
    raise UnsupportedEntity(model)
