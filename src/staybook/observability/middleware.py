"""
staybook.observability.middleware

Request-scoped logging context and access log.

Responsibilities:
- Generate/propagate request IDs (`x-request-id`).
- Bind request metadata into structlog contextvars.
- Emit one `request_finished` line per request, except for health checks.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from staybook.observability.logging import get_logger

log = get_logger(__name__)

QUIET_PATHS = frozenset({"/healthz", "/readyz"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            client=request.client.host if request.client else None,
        )
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            if request.url.path not in QUIET_PATHS:
                emit = log.warning if response.status_code >= 500 else log.info
                emit(
                    "request_finished",
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response
