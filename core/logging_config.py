"""Structured JSON logging shared by the engine, the API and the scripts.

Context travels in two ways: the current request id lives in a context
variable set by the API middleware, and per-call fields are passed as
``extra={"ctx_<name>": value}`` and emitted under ``context``.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

SERVICE_NAME = "smart-defaults"
CONTEXT_PREFIX = "ctx_"

_NOISY_LOGGERS = ("sqlalchemy.engine", "alembic", "asyncio", "uvicorn.access")

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id_var.get()


def set_request_id(value: Optional[str]) -> contextvars.Token:
    return _request_id_var.set(value)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_var.reset(token)


def new_request_id() -> str:
    return uuid4().hex


def _context_fields(record: logging.LogRecord) -> dict[str, Any]:
    size = len(CONTEXT_PREFIX)
    return {key[size:]: value for key, value in vars(record).items() if key.startswith(CONTEXT_PREFIX)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, location, request id, context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            entry["exception"] = {"type": type(exc).__name__, "message": str(exc)}

        context = _context_fields(record)
        if context:
            entry["context"] = context
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Install the JSON handler on the root logger. Later calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(JSONFormatter())
    root.addHandler(stream)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)