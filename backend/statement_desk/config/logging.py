"""Structured logging configuration.

Every stdlib record leaves as one JSON line through JsonFormatter, carrying the
request and document context (request_id, statement_id, document) when bound.
structlog loggers render their own JSON events and share the request_id
bound by the request middleware through contextvars.
"""
from __future__ import annotations

import json
import logging as _logging
import os
import sys
import time
from typing import Any, Dict, Optional

import structlog

DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SERVICE = "statement-desk"

CONTEXT_FIELDS = ("request_id", "trace_id", "span_id", "statement_id", "document")
# Libraries whose INFO output drowns the request log
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "fontTools")


class JsonFormatter(_logging.Formatter):
    def format(self, record) -> str:  # noqa: D401 - record is LogRecord
        entry: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "service": SERVICE,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({f: getattr(record, f) for f in CONTEXT_FIELDS if hasattr(record, f)})
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        # Cyrillic names stay readable in the log stream
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    """Install the JSON handler on the root logger and configure structlog."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    handler = _logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = _logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level or DEFAULT_LEVEL)
    for name in QUIET_LOGGERS:
        _logging.getLogger(name).setLevel(_logging.WARNING)


def bind_context(logger, **kwargs: Any):
    """Attach statement/document context to a stdlib logger's records."""
    if not kwargs:
        return logger
    return _logging.LoggerAdapter(logger, extra=kwargs)
