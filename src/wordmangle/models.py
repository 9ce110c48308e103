"""Pydantic v2 request/response schemas for the mangling API."""

from enum import Enum

from pydantic import BaseModel, Field


class ContentFormat(str, Enum):
    """How the submitted text is interpreted."""

    text = "text"
    html = "html"


class MangleRequest(BaseModel):
    """Request body for the /mangle endpoint."""

    text: str = Field(..., min_length=1)
    format: ContentFormat = ContentFormat.text


class MangleResponse(BaseModel):
    """Response body for the /mangle endpoint."""

    mangled_text: str
    format: ContentFormat
    word_count: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Response body for the /health endpoints."""

    status: str = "ok"
