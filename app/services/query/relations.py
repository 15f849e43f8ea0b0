from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from sqlalchemy import column as sa_column
from sqlalchemy import table as sa_table
from sqlalchemy.orm import Query

from app.db.session import Base

from .entities import EntityRegistry, column_attribute, primary_key_column
from .errors import MalformedRelationDescriptor

_LOG = logging.getLogger("app.query")

HAS_MANY = "hasMany"
MANY_TO_MANY = "manyToMany"
MORPH_MANY = "morphMany"

_IRREGULAR_SINGULARS = {
    "people": "person",
    "children": "child",
    "men": "man",
    "women": "woman",
    "mice": "mouse",
    "geese": "goose",
    "feet": "foot",
    "teeth": "tooth",
    "criteria": "criterion",
    "indices": "index",
    "matrices": "matrix",
    "vertices": "vertex",
    "analyses": "analysis",
    "leaves": "leaf",
    "lives": "life",
    "wives": "wife",
    "knives": "knife",
}
_UNCOUNTABLE = {"news", "series", "species", "information", "equipment", "metadata", "media", "data"}
_ES_SUFFIX_RE = re.compile(r"(ss|sh|ch|x|z|tus)es$")


def singularize(word: str) -> str:
    """English singular of a table name; snake_case names singularize their last segment."""
    if "_" in word:
        head, _, tail = word.rpartition("_")
        return f"{head}_{singularize(tail)}"
    lower = word.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR_SINGULARS:
        return _IRREGULAR_SINGULARS[lower]
    if lower.endswith("ies") and len(lower) > 3:
        return word[:-3] + "y"
    if _ES_SUFFIX_RE.search(lower):
        return word[:-2]
    if lower.endswith(("ss", "us", "is")):
        return word
    if lower.endswith("s"):
        return word[:-1]
    return word


@dataclass(frozen=True)
class HasMany:
    kind: ClassVar[str] = HAS_MANY
    left_table: str
    right_table: str
    anchor_id: Any


@dataclass(frozen=True)
class ManyToMany:
    kind: ClassVar[str] = MANY_TO_MANY
    left_table: str
    right_table: str
    anchor_id: Any


@dataclass(frozen=True)
class MorphMany:
    kind: ClassVar[str] = MORPH_MANY
    left_table: str
    right_table: str
    anchor_id: Any


RelationFilter = Union[HasMany, ManyToMany, MorphMany]

_RELATION_KINDS: dict[str, type] = {
    HAS_MANY: HasMany,
    MANY_TO_MANY: ManyToMany,
    MORPH_MANY: MorphMany,
}


def _normalize_anchor(value: Any) -> Any:
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def parse_relation_descriptor(descriptor: Any) -> RelationFilter:
    """Parse `<leftTable>.<relationKind>.<rightTable>.<anchorId>` into a relation filter."""
    if isinstance(descriptor, (HasMany, ManyToMany, MorphMany)):
        return descriptor
    if not isinstance(descriptor, str):
        raise MalformedRelationDescriptor(descriptor, "expected a string")
    parts = [part.strip() for part in descriptor.strip().split(".")]
    if len(parts) != 4:
        raise MalformedRelationDescriptor(descriptor, "expected <leftTable>.<relationKind>.<rightTable>.<anchorId>")
    if not all(parts):
        raise MalformedRelationDescriptor(descriptor, "empty segment")
    left_table, kind, right_table, anchor_id = parts
    relation_cls = _RELATION_KINDS.get(kind)
    if relation_cls is None:
        raise MalformedRelationDescriptor(descriptor, f"unknown relation kind {kind!r}")
    return relation_cls(left_table=left_table, right_table=right_table, anchor_id=_normalize_anchor(anchor_id))


DEFAULT_OWNER_PREFIXES = {"role": "role_has"}


class PivotNaming:
    """Resolves pivot table names for many-to-many and polymorphic relations.

    `owner_prefixes` maps a singular owner table to the prefix used in its
    pivot names; `overrides` pins a pivot name for a (left, right) pair.
    """

    def __init__(
        self,
        owner_prefixes: dict[str, str] | None = None,
        overrides: dict[tuple[str, str], str] | None = None,
        morph_prefix: str = "model_has_",
    ):
        self.owner_prefixes = dict(DEFAULT_OWNER_PREFIXES if owner_prefixes is None else owner_prefixes)
        self.overrides = dict(overrides or {})
        self.morph_prefix = morph_prefix

    def register(self, left_table: str, right_table: str, pivot_table: str) -> None:
        self.overrides[(left_table, right_table)] = pivot_table

    def many_to_many(self, left_table: str, right_table: str) -> str:
        override = self.overrides.get((left_table, right_table))
        if override:
            return override
        owner = singularize(left_table)
        return f"{self.owner_prefixes.get(owner, owner)}_{right_table}"

    def morph_many(self, right_table: str) -> str:
        return f"{self.morph_prefix}{right_table}"


def _pivot_table(name: str, *columns: str):
    existing = Base.metadata.tables.get(name)
    if existing is not None and all(col in existing.c for col in columns):
        return existing
    return sa_table(name, *(sa_column(col) for col in columns))


def _column(model: type, key: str):
    attr = column_attribute(model, key)
    return attr if attr is not None else sa_column(key)


def _right_key(model: type, relation: RelationFilter):
    if model.__tablename__ != relation.right_table:
        raise MalformedRelationDescriptor(
            f"{relation.left_table}.{relation.kind}.{relation.right_table}.{relation.anchor_id}",
            f"right table must be the queried table {model.__tablename__!r}",
        )
    return primary_key_column(model)


def apply_relation(
    query: Query,
    model: type,
    relation: Any,
    *,
    registry: EntityRegistry,
    pivots: PivotNaming | None = None,
) -> Query:
    relation = parse_relation_descriptor(relation)
    pivots = pivots or PivotNaming()
    anchor_id = _normalize_anchor(relation.anchor_id)

    if isinstance(relation, HasMany):
        if relation.left_table == relation.right_table:
            key = "parent_id"
        else:
            key = f"{singularize(relation.left_table)}_id"
        _LOG.debug("relation filter kind=%s column=%s anchor=%s", relation.kind, key, anchor_id)
        return query.filter(_column(model, key) == anchor_id)

    right_pk = _right_key(model, relation)
    right_fk = f"{singularize(relation.right_table)}_id"

    if isinstance(relation, ManyToMany):
        pivot_name = pivots.many_to_many(relation.left_table, relation.right_table)
        left_fk = f"{singularize(relation.left_table)}_id"
        pivot = _pivot_table(pivot_name, left_fk, right_fk)
        _LOG.debug("relation filter kind=%s pivot=%s anchor=%s", relation.kind, pivot_name, anchor_id)
        return query.join(pivot, right_pk == pivot.c[right_fk]).filter(pivot.c[left_fk] == anchor_id)

    # The owner's morph type must resolve before any SQL is built.
    model_type = registry.morph_type(relation.left_table)
    pivot_name = pivots.morph_many(relation.right_table)
    pivot = _pivot_table(pivot_name, right_fk, "model_type", "model_id")
    _LOG.debug("relation filter kind=%s pivot=%s owner=%s anchor=%s", relation.kind, pivot_name, model_type, anchor_id)
    return (
        query.join(pivot, right_pk == pivot.c[right_fk])
        .filter(pivot.c.model_type == model_type)
        .filter(pivot.c.model_id == anchor_id)
    )
