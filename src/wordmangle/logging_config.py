"""Structured JSON logging configuration.

Never logs source text or mangled output; only sizes, timings and request
metadata leave the process.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOGGER_NAME = "wordmangle"


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter."""

    SAFE_FIELDS = (
        "request_id",
        "content_format",
        "input_length",
        "word_count",
        "corpus_words",
        "processing_time_ms",
        "client_ip",
        "error",
        "method",
        "path",
        "status_code",
        "environment",
        "detail",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.SAFE_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info and "error" not in log_entry:
            exc_type = record.exc_info[0]
            log_entry["error"] = exc_type.__name__ if exc_type else "Unhandled exception"

        return json.dumps(log_entry, separators=(",", ":"), ensure_ascii=False)


class ContextAdapter(logging.LoggerAdapter):
    """Adapter that merges its context into each call's ``extra``."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logging(
    log_directory: Optional[Path] = None,
    level: str = "INFO",
    environment: str = "production",
) -> ContextAdapter:
    """Configure structured logging to stderr and, optionally, a session file."""

    logger = logging.getLogger(LOGGER_NAME)
    adapter = ContextAdapter(logger, extra={"environment": environment})
    if logger.handlers:
        return adapter

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = JSONFormatter()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)

    if log_directory is not None:
        log_directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        file_handler = logging.FileHandler(log_directory / f"session_{timestamp}.jsonl", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return adapter
