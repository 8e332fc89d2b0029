"""Structured Logging — JSON formatter and setup for production observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (arrangement_id, payment_id, reminder_id, error_code) surfaced when present
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter on stdlib logging: one line per record, ready for log shippers
    - setup_logging runs from the lifespan and replaces its own handler on re-entry
"""

import logging
import json
from datetime import datetime, timezone

_EXTRA_FIELDS = (
    "arrangement_id", "payment_id", "reminder_id", "proposal_id",
    "error_code", "attempt", "path", "sent", "deferred", "failed",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = str(val) if not isinstance(val, (int, float)) else val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure root logging; safe to call again (lifespan restarts in tests)."""
    for existing in list(logging.root.handlers):
        if getattr(existing, "_trustlend", False):
            logging.root.removeHandler(existing)
    handler = logging.StreamHandler()
    handler._trustlend = True
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # engine INFO logs every statement
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
