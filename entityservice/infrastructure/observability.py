"""Structured Logging — JSON formatter and setup for client-side observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (entity_key, query_key, endpoint, error_code, ...) surfaced when present
    - JSON format for machine consumption, human-readable for local development

Design Decisions:
    - JSONFormatter on stdlib logging, no structured-logging dependency
    - setup_logging called once by the composition root (entityservice/main.py),
      never at import time
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "entity_key", "query_key", "endpoint", "error_code",
    "field_name", "status_code", "cache_size",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Attach one handler to the package logger and return it."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    package_logger = logging.getLogger("entityservice")
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
