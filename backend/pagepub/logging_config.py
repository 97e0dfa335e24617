"""
Logging setup for pagepub.

Human-readable lines in development, one JSON object per line in production.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

_RESERVED = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # extra={...} fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def configure_logging(app) -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once (test apps are built per test).
    """
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = JSONFormatter() if app.config.get("LOG_FORMAT") == "json" else TextFormatter()

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_pagepub", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler._pagepub = True
    root.addHandler(handler)
    root.setLevel(level)

    # SQL echo is controlled by SQLALCHEMY_ECHO, not by our level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
