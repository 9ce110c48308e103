"""FastAPI application entry point for the mangling service."""

from __future__ import annotations

import io
import json
import time
from contextlib import asynccontextmanager
from json import JSONDecodeError

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from .config import get_settings
from .corpus import read_corpus
from .errors import MarkupError
from .logging_config import setup_logging
from .mangler import Mangler
from .middleware import (
    PayloadSizeMiddleware,
    RequestContextMiddleware,
    RequestTimeoutMiddleware,
    StructuredLoggingMiddleware,
    client_identifier,
)
from .models import ContentFormat, HealthResponse, MangleRequest, MangleResponse

_FORMAT_BY_MEDIA_TYPE = {
    "text/plain": ContentFormat.text,
    "text/html": ContentFormat.html,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger = setup_logging(
        log_directory=settings.log_directory,
        level=settings.log_level,
        environment=settings.environment,
    )

    app.state.settings = settings
    app.state.logger = logger
    app.state.ready = False

    try:
        corpus = read_corpus(settings.corpus_path, encoding=settings.corpus_encoding)
    except Exception as exc:
        logger.error("Corpus load failed", extra={"error": exc.__class__.__name__})
        raise

    app.state.mangler = Mangler(corpus, settings.secret)
    app.state.ready = True
    logger.info("Corpus loaded", extra={"corpus_words": len(corpus)})

    try:
        yield
    finally:
        app.state.ready = False


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _log_timeout(request: Request) -> None:
    logger = getattr(request.app.state, "logger", None)
    if logger:
        logger.warning(
            "Request timed out",
            extra={"request_id": _request_id(request), "path": request.url.path},
        )


app = FastAPI(
    title="Word Mangle Service",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.add_middleware(StructuredLoggingMiddleware)
app.add_middleware(PayloadSizeMiddleware)
app.add_middleware(
    RequestTimeoutMiddleware,
    timeout_seconds=None,
    on_timeout=_log_timeout,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger = getattr(request.app.state, "logger", None)
    if logger:
        logger.warning(
            "HTTP error",
            extra={
                "request_id": _request_id(request),
                "status_code": exc.status_code,
                "path": request.url.path,
            },
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger = getattr(request.app.state, "logger", None)
    if logger:
        logger.warning(
            "Validation error",
            extra={"request_id": _request_id(request), "path": request.url.path},
        )
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "errors": exc.errors()},
    )


@app.exception_handler(MarkupError)
async def markup_exception_handler(request: Request, exc: MarkupError):
    logger = getattr(request.app.state, "logger", None)
    if logger:
        logger.warning(
            "Malformed markup",
            extra={
                "request_id": _request_id(request),
                "path": request.url.path,
                "error": exc.__class__.__name__,
            },
        )
    return JSONResponse(status_code=422, content={"detail": "Malformed markup"})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger = getattr(request.app.state, "logger", None)
    if logger:
        logger.error(
            "Internal server error",
            extra={
                "request_id": _request_id(request),
                "path": request.url.path,
                "error": exc.__class__.__name__,
            },
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(request: Request):
    state = request.app.state
    if not getattr(state, "ready", False) or getattr(state, "mangler", None) is None:
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service unavailable"},
        )
    return HealthResponse()


def mangle_document(mangler: Mangler, text: str, content_format: ContentFormat) -> tuple[str, int]:
    """Mangle ``text`` as plain text or HTML; return (output, word count)."""

    reader = io.StringIO(text, newline="")
    writer = io.StringIO(newline="")
    if content_format is ContentFormat.html:
        word_count = mangler.mangle_html(reader, writer)
    else:
        word_count = mangler.mangle_stream(reader, writer)
    return writer.getvalue(), word_count


def _parse_request(body: bytes, content_type: str) -> MangleRequest:
    media_type = content_type.split(";", 1)[0].strip().lower()
    content_format = _FORMAT_BY_MEDIA_TYPE.get(media_type)
    if content_format is not None:
        return MangleRequest(text=body.decode("utf-8"), format=content_format)
    return MangleRequest.model_validate(json.loads(body))


@app.post("/mangle", response_model=MangleResponse)
async def mangle(request: Request):
    started_at = getattr(request.state, "started_at", time.monotonic())
    logger = getattr(request.app.state, "logger", None)
    mangler: Mangler = request.app.state.mangler

    body = getattr(request.state, "body", None)
    if body is None:
        body = await request.body()

    try:
        mangle_request = _parse_request(body, request.headers.get("content-type", ""))
    except (UnicodeDecodeError, JSONDecodeError):
        return JSONResponse(status_code=400, content={"detail": "Invalid request body"})
    except ValidationError as exc:
        return JSONResponse(
            status_code=400,
            content={"detail": "Validation error", "errors": exc.errors(include_input=False)},
        )

    mangled_text, word_count = await run_in_threadpool(
        mangle_document, mangler, mangle_request.text, mangle_request.format
    )

    if logger:
        logger.info(
            "Mangling completed",
            extra={
                "request_id": _request_id(request),
                "content_format": mangle_request.format.value,
                "input_length": len(mangle_request.text),
                "word_count": word_count,
                "processing_time_ms": round((time.monotonic() - started_at) * 1000, 2),
                "client_ip": client_identifier(request),
            },
        )

    return MangleResponse(
        mangled_text=mangled_text,
        format=mangle_request.format,
        word_count=word_count,
    )
