from __future__ import annotations

import re
from typing import Any

from fastapi import HTTPException, Request
from pydantic import ValidationError

from app.schemas.query import ListParams, SearchOptions

# filters[status]=x, filters[created_at][]=a, search_options[fields][]=name
_BRACKET_KEY_RE = re.compile(r"^(?P<group>[A-Za-z_]+)\[(?P<key>[^\[\]]+)\](?P<many>\[\])?$")
_SORT_DIRECTIONS = {"asc", "desc"}


def _split_bracket_key(raw_key: str) -> tuple[str, str, bool] | None:
    match = _BRACKET_KEY_RE.match(raw_key)
    if match is None:
        return None
    return match.group("group"), match.group("key"), bool(match.group("many"))


def _csv(value: str) -> list[str]:
    return [item.strip() for item in str(value or "").split(",") if item.strip()]


def parse_list_params(request: Request) -> ListParams:
    filters: dict[str, Any] = {}
    search: dict[str, Any] = {}
    columns: list[str] = []
    with_ids: list[Any] = []

    for raw_key, value in request.query_params.multi_items():
        parts = _split_bracket_key(raw_key)
        if parts is not None:
            group, key, many = parts
            if group == "filters":
                if many:
                    filters.setdefault(key, []).append(value)
                else:
                    filters[key] = value
            elif group == "search_options":
                if key == "fields":
                    search.setdefault("fields", []).extend(_csv(value) if not many else [value])
                else:
                    search[key] = value
            continue

        if raw_key == "search":
            search["term"] = value
        elif raw_key in {"columns", "columns[]"}:
            columns.extend(_csv(value))
        elif raw_key in {"with_ids", "with_ids[]"}:
            with_ids.extend(_csv(value))

    sort_by = str(request.query_params.get("sort_by") or "").strip()
    if sort_by:
        search["sort_field"] = sort_by
    sort_direction = str(request.query_params.get("sort_direction") or "").strip().lower()
    if sort_direction:
        if sort_direction not in _SORT_DIRECTIONS:
            raise HTTPException(status_code=400, detail="sort_direction must be asc or desc")
        search["sort_direction"] = sort_direction

    try:
        options = SearchOptions(**search)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid search options: {exc.errors()[0].get('msg')}")
    return ListParams(filters=filters, search=options, columns=columns, with_ids=with_ids)
