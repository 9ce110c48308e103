"""Application configuration using pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_LENGTH = 16


class AppSettings(BaseSettings):
    """Runtime configuration for the mangling service."""

    model_config = SettingsConfigDict(env_prefix="MANGLE_", case_sensitive=False)

    secret: str = Field(..., min_length=MIN_SECRET_LENGTH)
    corpus_path: Path = Field(default=Path("corpus.txt"))
    corpus_encoding: str = Field("utf-8")
    max_payload_bytes: int = Field(1_048_576, ge=1_024, le=8_388_608)
    request_timeout_seconds: int = Field(15, ge=1)
    log_directory: Path = Field(default=Path("logs"))
    log_level: str = Field("INFO")
    environment: str = Field("production")


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return cached settings instance."""

    settings = AppSettings()
    settings.log_directory.mkdir(parents=True, exist_ok=True)
    return settings
