from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.services.query.errors import (
    InvalidCursor,
    InvalidFilterValue,
    MalformedRelationDescriptor,
    QueryError,
    UnresolvedPolymorphicType,
    UnsupportedEntity,
    ValidationFailed,
)

_LOG = logging.getLogger("app.http")

QUERY_ERROR_STATUS: dict[type[QueryError], int] = {
    MalformedRelationDescriptor: 400,
    InvalidFilterValue: 400,
    InvalidCursor: 400,
    UnresolvedPolymorphicType: 500,
    UnsupportedEntity: 500,
}


def status_for(exc: QueryError) -> int:
    for error_type, status_code in QUERY_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationFailed)
    async def _validation_failed_handler(request: Request, exc: ValidationFailed):
        return JSONResponse(status_code=422, content=exc.to_dict())

    @app.exception_handler(QueryError)
    async def _query_error_handler(request: Request, exc: QueryError):
        status_code = status_for(exc)
        if status_code >= 500:
            _LOG.error("query configuration fault path=%s error=%s", request.url.path, exc.message)
        else:
            _LOG.info("rejected query path=%s error=%s", request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content=exc.to_dict())
