from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Session

from app.schemas.query import ListParams
from app.services.crud import CRUDOperations
from app.services.query.driver import DatabaseQueryDriver, select_driver
from app.services.query.entities import load_entity_registry


def _normalize_table_name(table_name: str) -> str:
    raw = (table_name or "").strip().replace("-", "_")
    if not raw:
        return ""
    chars: list[str] = []
    for index, ch in enumerate(raw):
        if ch.isupper() and index > 0 and raw[index - 1].isalnum() and raw[index - 1] != "_":
            chars.append("_")
        chars.append(ch.lower())
    return "".join(chars)


def _resolve_table_model(table_name: str) -> type:
    model = load_entity_registry().get(_normalize_table_name(table_name))
    if model is None:
        raise HTTPException(status_code=404, detail="Table not found")
    return model


def _serialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _serialize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize_value(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    return value


def _row_to_dict(row: Any) -> dict[str, Any]:
    """Loaded column values only, so rows fetched with load_only serialize without lazy loads."""
    state = sa_inspect(row)
    unloaded = state.unloaded
    return {
        column.key: _serialize_value(getattr(row, column.key))
        for column in state.mapper.column_attrs
        if column.key not in unloaded
    }


def _operations(table_name: str, db: Session, params: ListParams | None = None) -> CRUDOperations:
    model = _resolve_table_model(table_name)
    driver = select_driver([DatabaseQueryDriver(db)], model)
    return CRUDOperations(db, model, driver=driver, params=params)


def _load_row_or_404(crud: CRUDOperations, row_id: str) -> Any:
    entity = crud.find(row_id)
    if entity is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return entity


def _integrity_error(detail: str = "Data constraint violated") -> HTTPException:
    return HTTPException(status_code=400, detail=detail)


def list_rows_service(table_name: str, params: ListParams, per_page: int | None, page: int, db: Session) -> dict[str, Any]:
    return _operations(table_name, db, params).paginate(per_page, page).to_dict(_row_to_dict)


def simple_list_rows_service(table_name: str, params: ListParams, per_page: int | None, page: int, db: Session) -> dict[str, Any]:
    return _operations(table_name, db, params).simple_paginate(per_page, page).to_dict(_row_to_dict)


def cursor_list_rows_service(
    table_name: str, params: ListParams, per_page: int | None, cursor: str | None, db: Session
) -> dict[str, Any]:
    return _operations(table_name, db, params).cursor_paginate(per_page, cursor).to_dict(_row_to_dict)


def cursor_all_rows_service(
    table_name: str, params: ListParams, per_page: int | None, cursor: str | None, db: Session
) -> dict[str, Any]:
    return _operations(table_name, db, params).cursor_all(per_page, cursor).to_dict(_row_to_dict)


def get_row_service(table_name: str, row_id: str, db: Session) -> dict[str, Any]:
    crud = _operations(table_name, db)
    return _row_to_dict(_load_row_or_404(crud, row_id))


def create_row_service(table_name: str, payload: dict[str, Any], db: Session) -> dict[str, Any]:
    crud = _operations(table_name, db)
    try:
        entity = crud.create(payload)
    except IntegrityError:
        raise _integrity_error()
    return _row_to_dict(entity)


def update_row_service(table_name: str, row_id: str, payload: dict[str, Any], db: Session) -> dict[str, Any]:
    crud = _operations(table_name, db)
    entity = _load_row_or_404(crud, row_id)
    try:
        crud.update(entity, payload)
    except IntegrityError:
        raise _integrity_error()
    db.refresh(entity)
    return _row_to_dict(entity)


def delete_row_service(table_name: str, row_id: str, db: Session) -> dict[str, Any]:
    crud = _operations(table_name, db)
    entity = _load_row_or_404(crud, row_id)
    try:
        crud.delete(entity)
    except IntegrityError:
        raise _integrity_error()
    return {"status": "deleted", "id": _serialize_value(row_id)}


def bulk_update_service(table_name: str, items: list[dict[str, Any]], db: Session) -> dict[str, Any]:
    crud = _operations(table_name, db)
    try:
        result = crud.bulk_update_detailed(items)
    except IntegrityError:
        raise _integrity_error()
    return {"status": "updated", "attempted": result.attempted, "updated": result.updated, "skipped": result.skipped}


def delete_some_service(table_name: str, ids: list[Any], db: Session) -> dict[str, Any]:
    try:
        deleted = _operations(table_name, db).delete_some(ids)
    except IntegrityError:
        raise _integrity_error()
    return {"deleted": deleted}


def delete_all_service(table_name: str, db: Session) -> dict[str, Any]:
    deleted = _operations(table_name, db).delete_all()
    return {"deleted": deleted}
