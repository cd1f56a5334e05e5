"""Logging setup shared by the API, the SMTP intake server and the Celery worker.

Every record carries the current correlation id (see request_id.py). With
LOG_JSON=true each record is one JSON object per line; context passed via
``extra=`` (message_id, client_id, ...) becomes top-level keys.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional

from .request_id import get_request_id

# Extra fields copied into JSON output when passed via `extra=`
CONTEXT_FIELDS = (
    "client_id",
    "requirement_id",
    "tracking_id",
    "message_id",
    "attachment",
    "outcome",
    "disposition",
    "channel",
    "status_code",
    "duration_ms",
)

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "botocore", "urllib3", "httpx", "mail.log")


class RequestIDFilter(logging.Filter):
    """Stamp the current correlation id on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "no-request-id"),
            "message": record.getMessage(),
        }
        entry.update(
            (name, str(getattr(record, name)))
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        )
        if record.exc_info:
            entry["error"] = str(record.exc_info[1])
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: str = "INFO", json_format: bool = True, stream: Optional[IO] = None) -> None:
    """Replace root handlers with a single stdout handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines if True, human-readable text otherwise
        stream: Output stream (defaults to stdout)
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestIDFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
