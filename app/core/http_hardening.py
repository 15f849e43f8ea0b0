from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request, Response

from app.core.config import settings

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("app.http")
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    # List pages change with every write.
    "Cache-Control": "no-store",
}


def configure_logging(level: str | None = None) -> None:
    """Set the root level from LOG_LEVEL; unknown names fall back to INFO."""
    name = str(level or settings.LOG_LEVEL or "INFO").strip().upper()
    numeric = logging.getLevelName(name)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=_LOG_FORMAT)
    root.setLevel(numeric if isinstance(numeric, int) else logging.INFO)


def resolve_request_id(raw: str | None) -> str:
    candidate = (raw or "").strip()
    return candidate if _VALID_REQUEST_ID.fullmatch(candidate) else uuid4().hex


def _finish_response(response: Response, request_id: str) -> Response:
    response.headers.update(RESPONSE_HEADERS)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _request_context_middleware(request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        started = perf_counter()
        response = _finish_response(await call_next(request), request_id)
        _LOG.info(
            "%s %s status=%s duration_ms=%.2f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - started) * 1000.0,
            request_id,
        )
        return response
