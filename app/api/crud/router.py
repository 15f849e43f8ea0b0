from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.query import BulkDeletePayload, BulkUpdatePayload, ListParams

from .params import parse_list_params
from .service import (
    bulk_update_service,
    create_row_service,
    cursor_all_rows_service,
    cursor_list_rows_service,
    delete_all_service,
    delete_row_service,
    delete_some_service,
    get_row_service,
    list_rows_service,
    simple_list_rows_service,
    update_row_service,
)

router = APIRouter()


@router.get("/{table_name}")
def list_rows(
    table_name: str,
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None),
    params: ListParams = Depends(parse_list_params),
    db: Session = Depends(get_db),
):
    return list_rows_service(table_name, params, per_page, page, db)


@router.get("/{table_name}/simple")
def simple_list_rows(
    table_name: str,
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None),
    params: ListParams = Depends(parse_list_params),
    db: Session = Depends(get_db),
):
    return simple_list_rows_service(table_name, params, per_page, page, db)


@router.get("/{table_name}/cursor")
def cursor_list_rows(
    table_name: str,
    cursor: str | None = Query(None),
    per_page: int | None = Query(None),
    params: ListParams = Depends(parse_list_params),
    db: Session = Depends(get_db),
):
    return cursor_list_rows_service(table_name, params, per_page, cursor, db)


@router.get("/{table_name}/cursor-all")
def cursor_all_rows(
    table_name: str,
    cursor: str | None = Query(None),
    per_page: int | None = Query(None),
    params: ListParams = Depends(parse_list_params),
    db: Session = Depends(get_db),
):
    return cursor_all_rows_service(table_name, params, per_page, cursor, db)


@router.patch("/{table_name}/bulk")
def bulk_update(table_name: str, payload: BulkUpdatePayload, db: Session = Depends(get_db)):
    return bulk_update_service(table_name, payload.items, db)


@router.post("/{table_name}/delete-some")
def delete_some(table_name: str, payload: BulkDeletePayload, db: Session = Depends(get_db)):
    return delete_some_service(table_name, payload.ids, db)


@router.get("/{table_name}/{row_id}")
def get_row(table_name: str, row_id: str, db: Session = Depends(get_db)):
    return get_row_service(table_name, row_id, db)


@router.post("/{table_name}", status_code=201)
def create_row(table_name: str, payload: dict[str, Any], db: Session = Depends(get_db)):
    return create_row_service(table_name, payload, db)


@router.patch("/{table_name}/{row_id}")
def update_row(table_name: str, row_id: str, payload: dict[str, Any], db: Session = Depends(get_db)):
    return update_row_service(table_name, row_id, payload, db)


@router.delete("/{table_name}/{row_id}")
def delete_row(table_name: str, row_id: str, db: Session = Depends(get_db)):
    return delete_row_service(table_name, row_id, db)


@router.delete("/{table_name}")
def delete_all(table_name: str, db: Session = Depends(get_db)):
    return delete_all_service(table_name, db)
