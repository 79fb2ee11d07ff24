"""
Structured logging configuration.
"""
import logging
import sys
from datetime import datetime, timezone
import json
from typing import Optional

from proposal_engine.core.config import settings


_EXTRA_FIELDS = ("quote_id", "action", "entity_type", "entity_id")


def _jsonable(obj):
    """Make values like datetimes safe for json.dumps."""
    if isinstance(obj, dict):
        return {k: _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(i) for i in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logging():
    """Configure application logging."""
    root_logger = logging.getLogger()

    # Prevent duplicate handlers on repeated calls
    if root_logger.handlers:
        return

    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root_logger.setLevel(level)

    # Console handler with structured output
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    # Suppress noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


class AuditLogger:
    """Helper for logging buyer decisions."""

    def __init__(self):
        self.logger = get_logger("audit")

    def log(
        self,
        action: str,
        quote_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        """Log an audit event."""
        extra = {
            "quote_id": quote_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
        }

        message = f"AUDIT: {action}"
        if entity_type and entity_id:
            message += f" on {entity_type}:{entity_id}"
        if details:
            message += f" - {json.dumps(_jsonable(details))}"

        self.logger.info(message, extra=extra)


audit_logger = AuditLogger()
