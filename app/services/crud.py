from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from sqlalchemy import column as sa_column
from sqlalchemy import or_
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Session, load_only

from app.core.config import settings
from app.schemas.query import ListParams
from app.services.query.driver import QueryDriver
from app.services.query.entities import column_attribute, primary_key_column
from app.services.query.errors import InvalidFilterValue
from app.services.query.filters import coerce_filter_value
from app.services.query.pagination import CursorPage, OffsetPage, SimplePage, keyset_page
from app.services.validation import ModelRuleProvider, RuleProvider, RuleSet, RuleValidator, update_unique_rules

_LOG = logging.getLogger("app.crud")


@dataclass
class BulkUpdateResult:
    attempted: int = 0
    updated: int = 0
    skipped: int = 0


class CRUDOperations:
    """Single-record and bulk operations for one entity, plus pagination dispatch.

    The query driver is injected by the caller; list parameters come from the
    request layer as an already normalized ListParams.
    """

    def __init__(
        self,
        db: Session,
        model: type,
        *,
        driver: QueryDriver,
        params: ListParams | None = None,
        validator: RuleValidator | None = None,
        rule_provider: RuleProvider | None = None,
    ):
        self.db = db
        self.model = model
        self.driver = driver
        self.params = params or ListParams()
        self.validator = validator or RuleValidator(db)
        self.rule_provider = rule_provider or ModelRuleProvider()

    # Pagination

    def paginate(self, per_page: int | None = None, page: int = 1) -> OffsetPage:
        return self.driver.paginate(self.model, self.params.filters, self.params.search, per_page, page)

    def simple_paginate(self, per_page: int | None = None, page: int = 1) -> SimplePage:
        return self.driver.simple_paginate(self.model, self.params.filters, self.params.search, per_page, page)

    def cursor_paginate(self, per_page: int | None = None, cursor: str | None = None) -> CursorPage:
        return self.driver.cursor_paginate(self.model, self.params.filters, self.params.search, per_page, cursor)

    def cursor_all(self, per_page: int | None = None, cursor: str | None = None) -> CursorPage:
        """Whole-table keyset pages for pickers: optional name search, with_ids always included."""
        pk = primary_key_column(self.model)
        query = self.db.query(self.model)

        columns = [column_attribute(self.model, name) for name in self.params.columns]
        columns = [col for col in columns if col is not None]
        if columns:
            query = query.options(load_only(*columns))

        conditions = []
        term = self.params.search.term
        if term:
            name = column_attribute(self.model, "name")
            conditions.append((name if name is not None else sa_column("name")).like(f"%{term}%"))
        with_ids = [self._pk_value(value) for value in self.params.with_ids]
        with_ids = [value for value in with_ids if value is not None]
        if with_ids:
            conditions.append(pk.in_(with_ids))
        if conditions:
            query = query.filter(or_(*conditions))

        return keyset_page(query, None, pk, descending=False, per_page=settings.clamp_per_page(per_page), cursor=cursor)

    # Single records

    def _pk_value(self, row_id: Any) -> Any:
        pk = primary_key_column(self.model)
        try:
            return coerce_filter_value(pk, row_id)
        except InvalidFilterValue:
            _LOG.debug("identifier not coercible model=%s id=%r", self.model.__name__, row_id)
            return None

    def find(self, row_id: Any) -> Any | None:
        value = self._pk_value(row_id)
        if value is None:
            return None
        return self.db.get(self.model, value)

    def _cast_payload(self, data: Mapping[str, Any]) -> dict[str, Any]:
        cast: dict[str, Any] = {}
        for key, value in data.items():
            column = column_attribute(self.model, key)
            cast[key] = value if column is None or value is None else coerce_filter_value(column, value)
        return cast

    def create(self, data: Mapping[str, Any]) -> Any:
        validated = self.validate_data(data)
        entity = self.model(**self._cast_payload(validated))
        self.db.add(entity)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(entity)
        return entity

    def _apply_update(self, entity: Any, data: Mapping[str, Any]) -> None:
        pk = primary_key_column(self.model)
        # Rules see the stored row overlaid with the payload, so partial updates pass `required`.
        current = {attr.key: getattr(entity, attr.key) for attr in sa_inspect(self.model).column_attrs}
        validated = self.validate_data({**current, **data}, exclude_id=getattr(entity, pk.key))
        changes = {key: value for key, value in validated.items() if key in data}
        for key, value in self._cast_payload(changes).items():
            setattr(entity, key, value)
        self.db.add(entity)
        self.db.flush()

    def update(self, entity: Any, data: Mapping[str, Any]) -> bool:
        try:
            self._apply_update(entity, data)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def delete(self, entity: Any) -> bool:
        try:
            self.db.delete(entity)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    # Bulk operations

    def bulk_update_detailed(self, batch: Iterable[Mapping[str, Any]]) -> BulkUpdateResult:
        result = BulkUpdateResult()
        try:
            for entry in batch:
                result.attempted += 1
                row_id = entry.get("id") if isinstance(entry, Mapping) else None
                if row_id is None or row_id == "":
                    result.skipped += 1
                    continue
                entity = self.find(row_id)
                if entity is None:
                    result.skipped += 1
                    continue
                self._apply_update(entity, entry)
                result.updated += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            _LOG.warning("bulk update rolled back model=%s attempted=%s", self.model.__name__, result.attempted)
            raise
        _LOG.info(
            "bulk update committed model=%s attempted=%s updated=%s skipped=%s",
            self.model.__name__,
            result.attempted,
            result.updated,
            result.skipped,
        )
        return result

    def bulk_update(self, batch: Iterable[Mapping[str, Any]]) -> bool:
        self.bulk_update_detailed(batch)
        return True

    def delete_some(self, ids: Iterable[Any]) -> bool:
        values = [self._pk_value(value) for value in ids or []]
        values = [value for value in values if value is not None]
        if not values:
            return False
        pk = primary_key_column(self.model)
        try:
            deleted = self.db.query(self.model).filter(pk.in_(values)).delete(synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        _LOG.info("delete some model=%s requested=%s deleted=%s", self.model.__name__, len(values), deleted)
        return deleted > 0

    def delete_all(self) -> bool:
        """Delete every row through the session, one keyset chunk at a time."""
        pk = primary_key_column(self.model)
        chunk_size = max(1, settings.QUERY_CHUNK_SIZE)
        deleted = 0
        last_key = None
        while True:
            query = self.db.query(self.model).order_by(pk.asc())
            if last_key is not None:
                query = query.filter(pk > last_key)
            rows = query.limit(chunk_size).all()
            if not rows:
                break
            for row in rows:
                last_key = getattr(row, pk.key)
                self.db.delete(row)
                deleted += 1
            self.db.commit()
        _LOG.info("delete all model=%s deleted=%s", self.model.__name__, deleted)
        return deleted > 0

    # Validation

    def update_unique_rules(self, rules: Mapping[str, Any], exclude_id: Any) -> dict[str, list[Any]]:
        return update_unique_rules(rules, exclude_id)

    def validate_data(self, data: Mapping[str, Any], exclude_id: Any = None) -> dict[str, Any]:
        rule_set = self.rule_provider.rules_for(self.model)
        if exclude_id is not None:
            rule_set = RuleSet(rules=self.update_unique_rules(rule_set.rules, exclude_id), messages=rule_set.messages)
        return self.validator.validate(data, rule_set)
