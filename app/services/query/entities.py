from __future__ import annotations

import importlib
import logging
import pkgutil
from functools import lru_cache
from typing import Any, Iterable, Protocol, runtime_checkable

from sqlalchemy.inspection import inspect as sa_inspect

import app.models as models_pkg
from app.db.session import Base

from .errors import UnresolvedPolymorphicType

_LOG = logging.getLogger("app.query")


@runtime_checkable
class QueryableEntity(Protocol):
    @classmethod
    def searchable_fields(cls) -> list[str]:
        ...

    @classmethod
    def boolean_fields(cls) -> set[str]:
        ...

    @classmethod
    def date_fields(cls) -> set[str]:
        ...

    @classmethod
    def morph_type(cls) -> str:
        ...


def primary_key_column(model: type) -> Any:
    pk = sa_inspect(model).primary_key
    if len(pk) != 1:
        raise ValueError(f"{model.__name__} must have exactly one primary key column")
    return getattr(model, pk[0].key)


def column_attribute(model: type, key: str) -> Any | None:
    """Mapped column attribute for key, or None when the model has no such column."""
    columns = sa_inspect(model).columns
    if key not in columns:
        return None
    return getattr(model, key)


def searchable_fields(model: type) -> list[str]:
    getter = getattr(model, "searchable_fields", None)
    return list(getter()) if callable(getter) else []


def boolean_fields(model: type) -> set[str]:
    getter = getattr(model, "boolean_fields", None)
    return set(getter()) if callable(getter) else set()


def date_fields(model: type) -> set[str]:
    getter = getattr(model, "date_fields", None)
    return set(getter()) if callable(getter) else set()


class EntityRegistry:
    """Table name -> entity class, plus the closed table -> morph type lookup."""

    def __init__(self, entities: Iterable[type] = (), morph_types: dict[str, str] | None = None):
        self._entities: dict[str, type] = {}
        self._morph_types: dict[str, str] = dict(morph_types or {})
        for entity in entities:
            self.register(entity)

    def register(self, entity: type, *, morphable: bool = False) -> type:
        table_name = entity.__tablename__
        self._entities[table_name] = entity
        if morphable:
            self._morph_types[table_name] = entity.morph_type()
        return entity

    def register_morph_type(self, table_name: str, type_name: str) -> None:
        self._morph_types[table_name] = type_name

    def get(self, table_name: str) -> type | None:
        return self._entities.get(str(table_name or "").strip().lower())

    def tables(self) -> list[str]:
        return sorted(self._entities)

    def morph_type(self, table_name: str) -> str:
        type_name = self._morph_types.get(table_name)
        if type_name is None:
            raise UnresolvedPolymorphicType(table_name)
        return type_name

    def __contains__(self, table_name: object) -> bool:
        return table_name in self._entities


def _import_model_modules() -> None:
    for module in pkgutil.iter_modules(models_pkg.__path__):
        if module.name.startswith("_"):
            continue
        importlib.import_module(f"{models_pkg.__name__}.{module.name}")


@lru_cache(maxsize=1)
def load_entity_registry() -> EntityRegistry:
    _import_model_modules()
    registry = EntityRegistry()
    for mapper in Base.registry.mappers:
        entity = mapper.class_
        if not issubclass(entity, QueryableEntity) or not getattr(entity, "__tablename__", None):
            continue
        # Only entities that pin an explicit morph type take part in polymorphic pivots.
        registry.register(entity, morphable="__morph_type__" in vars(entity) and entity.__morph_type__ is not None)
    _LOG.debug("entity registry loaded tables=%s", ",".join(registry.tables()))
    return registry
