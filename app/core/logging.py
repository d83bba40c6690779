from __future__ import annotations

import logging
import json
import sys
from datetime import datetime, timezone
from contextvars import ContextVar
from typing import Any, Dict, Optional

from app.core.config import settings

# Set by the request middleware for the lifetime of one request
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attribute on a LogRecord holding structured fields, see log_fields()
EXTRA_ATTR = "extra_data"


def log_fields(**fields: Any) -> Dict[str, Dict[str, Any]]:
    """Build the ``extra`` argument that attaches ``fields`` to a log record.

    Usage: ``logger.info("Book borrowed", extra=log_fields(book_id=..., quantity=2))``
    """
    return {EXTRA_ATTR: fields}


class JSONFormatter(logging.Formatter):
    """Render a record as one JSON object per line.

    Structured fields passed through :func:`log_fields` become top-level keys;
    they never overwrite the base keys.
    """

    BASE_KEYS = ("timestamp", "level", "logger", "message")

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        req_id = request_id_ctx.get()
        if req_id:
            entry["request_id"] = req_id

        for key, value in getattr(record, EXTRA_ATTR, {}).items():
            if key not in self.BASE_KEYS:
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    """Send JSON logs to stdout at ``level`` (defaults to ``settings.LOG_LEVEL``)."""
    level_name = (level or settings.LOG_LEVEL).upper()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))

    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
