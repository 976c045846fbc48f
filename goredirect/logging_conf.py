"""Logging configuration for the redirector.

Every record becomes one JSON object on stdout, which keeps the output easy to
ship from a container or a systemd unit. setup_logging() is idempotent: calling
it more than once never duplicates handlers.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging import Handler, LogRecord
from typing import Any

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "color_message",
    }
)


class JsonFormatter(logging.Formatter):
    """A minimal JSON formatter.

    - Produces one JSON object per line.
    - Includes common fields (ts, level, logger, message) and any structured
      extras provided via `logger.info("msg", extra={...})`.
    """

    def format(self, record: LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }

        msg = record.msg
        if isinstance(msg, dict):
            payload.update(msg)
        else:
            payload["message"] = record.getMessage()

        for key, value in record.__dict__.items():
            if key in _RESERVED or key in payload:
                continue
            payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _make_stream_handler(level: int) -> Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def setup_logging(level: str | int = _DEFAULT_LEVEL) -> None:
    """Configure root and uvicorn loggers for JSON output.

    Idempotent: only attaches handlers if none are present.
    """
    root = logging.getLogger()

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if root.handlers:  # Prevent double configuration under tests
        return

    root.setLevel(level)
    root.addHandler(_make_stream_handler(level))

    # Align server loggers to the same handler/level
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.propagate = True
        for h in list(lg.handlers):
            lg.removeHandler(h)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger.

    Usage: logger = get_logger("redirector.rules")
    """
    return logging.getLogger(name if name else __name__)
