from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from fitplan.config import get_settings

SERVICE_NAME = "fitplan-engine"
_CTX_PREFIX = "ctx_"


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter; ``ctx_*`` extras land under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        context = {
            k[len(_CTX_PREFIX):]: v
            for k, v in record.__dict__.items()
            if k.startswith(_CTX_PREFIX)
        }
        if context:
            log_entry["context"] = context
        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging(level: str | None = None) -> None:
    """Configure structured JSON logging to stdout.

    The level defaults to ``Settings.log_level`` for the current APP_ENV.
    Calling it again once a handler is installed is a no-op.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    if level is None:
        level = get_settings().log_level

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger for a module."""
    return logging.getLogger(name)
