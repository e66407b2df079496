"""Structured Logging — JSON formatter and setup for verification flows.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (session_id, stage, attempt, error_code, kind, http_status)
      surfaced when present
    - Credentials are never passed as extras, so they never reach a handler

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - setup_logging is opt-in: a library must not configure the root logger on import
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = ("session_id", "stage", "attempt", "error_code", "kind", "http_status")


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
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
    """Attach one handler to the root logger. Returns it so callers can detach it."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
