"""Custom FastAPI middleware components."""

from __future__ import annotations

import asyncio
import logging
import re
import time
import uuid
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .logging_config import LOGGER_NAME

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach a request ID and start time to every request.

    A well formed ``X-Request-ID`` supplied by the caller is reused so logs can
    be correlated across services; anything else is replaced by a fresh UUID.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = incoming if _REQUEST_ID_RE.match(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.started_at = time.monotonic()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class PayloadSizeMiddleware(BaseHTTPMiddleware):
    """Reject request bodies larger than the configured limit (413).

    The body is read once and cached on ``request.state.body`` for the
    endpoint.
    """

    def __init__(self, app: ASGIApp, max_payload_bytes: int | None = None, settings_attr: str = "settings") -> None:
        super().__init__(app)
        self._max_payload_bytes = max_payload_bytes
        self._settings_attr = settings_attr

    def _limit(self, request: Request) -> int | None:
        if self._max_payload_bytes is not None:
            return self._max_payload_bytes
        settings = getattr(request.app.state, self._settings_attr, None)
        return settings.max_payload_bytes if settings is not None else None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        limit = self._limit(request)
        if limit is None:
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared is not None:
            if not declared.isdigit():
                return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length"})
            if int(declared) > limit:
                return _too_large()

        body = await request.body()
        if len(body) > limit:
            return _too_large()
        request.state.body = body
        return await call_next(request)


def _too_large() -> JSONResponse:
    return JSONResponse(status_code=413, content={"detail": "Payload too large"})


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when handling a request takes longer than allowed."""

    def __init__(
        self,
        app: ASGIApp,
        timeout_seconds: float | None,
        on_timeout: Callable[[Request], None],
        settings_attr: str = "settings",
    ) -> None:
        super().__init__(app)
        self._timeout_seconds = timeout_seconds
        self._on_timeout = on_timeout
        self._settings_attr = settings_attr

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        timeout_seconds = self._timeout_seconds
        if timeout_seconds is None:
            settings = getattr(request.app.state, self._settings_attr, None)
            if settings is None:
                return await call_next(request)
            timeout_seconds = settings.request_timeout_seconds

        try:
            return await asyncio.wait_for(call_next(request), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            self._on_timeout(request)
            return JSONResponse(status_code=504, content={"detail": "Request timed out"})


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log one structured line per request once the response is ready."""

    def __init__(self, app: ASGIApp, logger_attr: str = "logger") -> None:
        super().__init__(app)
        self._logger_attr = logger_attr

    def _logger(self, request: Request):
        logger = getattr(request.app.state, self._logger_attr, None)
        return logger if logger is not None else logging.getLogger(LOGGER_NAME)

    def _fields(self, request: Request, status_code: int, started_at: float) -> dict:
        return {
            "request_id": getattr(request.state, "request_id", "unknown"),
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "processing_time_ms": round((time.monotonic() - started_at) * 1000, 2),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        started_at = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            self._logger(request).error("Request failed", extra=self._fields(request, 500, started_at))
            raise
        self._logger(request).info("Request completed", extra=self._fields(request, response.status_code, started_at))
        return response


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"
