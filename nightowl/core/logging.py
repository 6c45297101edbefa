import logging
import sys
import os
from typing import Dict, Any, Optional
import json
from datetime import datetime, timezone
import contextlib
import contextvars
from pathlib import Path

from nightowl.core.config import settings

# Context carried into every log record (request id, user id, operation)
log_context_var = contextvars.ContextVar("log_context", default={})

# Always present on records, so a gamification log line can be traced to its user
CONTEXT_FIELDS = ("request_id", "user_id", "operation")


class JsonFormatter(logging.Formatter):
    """
    Formatter that renders each record as a single JSON line.
    """

    def format(self, record: logging.LogRecord) -> str:
        record_dict = self._prepare_log_dict(record)
        return json.dumps(record_dict, default=str)

    def _prepare_log_dict(self, record: logging.LogRecord) -> Dict[str, Any]:
        record_dict = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            record_dict["exception"] = self.formatException(record.exc_info)

        context = log_context_var.get()
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            record_dict[key] = context.get(key) if value is None else value

        # Attributes passed via extra={"extras": {...}}
        if hasattr(record, "extras"):
            for key, value in record.extras.items():
                record_dict[key] = value

        if context:
            for key, value in context.items():
                if key not in record_dict:
                    record_dict[key] = value

        return record_dict


class ContextFilter(logging.Filter):
    """
    Filter that copies the current log context onto each record.
    """

    def filter(self, record):
        context = log_context_var.get()
        for key in CONTEXT_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, None)
        if context:
            for key, value in context.items():
                setattr(record, key, value)
        return True


def setup_logging(level: Optional[str] = None):
    """
    Set up logging for the application.

    Args:
        level: Optional log level override (default to settings)
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    context_filter = ContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)

    # Use JSON formatter in production
    if settings.ENVIRONMENT == "production":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s [user=%(user_id)s op=%(operation)s] - %(message)s"
        )

    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    console_handler.addFilter(context_filter)
    root_logger.addHandler(console_handler)

    if settings.LOG_FILE:
        try:
            log_dir = Path(settings.LOG_FILE).parent
            os.makedirs(log_dir, exist_ok=True)

            file_handler = logging.FileHandler(settings.LOG_FILE)
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level)
            file_handler.addFilter(context_filter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"Error setting up file logging: {e}")

    # Reduce noise from third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.INFO)

    return logging.getLogger("nightowl")


@contextlib.contextmanager
def log_context(**context_data):
    """
    Context manager for adding context to logs.

    Usage:
        with log_context(user_id=123, operation="daily_check_in"):
            logger.info("Check-in recorded")

    Args:
        **context_data: Key-value pairs to add to log context
    """
    current_context = log_context_var.get().copy()
    current_context.update(context_data)
    token = log_context_var.set(current_context)

    try:
        yield
    finally:
        log_context_var.reset(token)
