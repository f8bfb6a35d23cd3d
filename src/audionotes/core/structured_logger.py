"""
Structured logging utilities for the Audio Notes service
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional


APP_LOGGER_NAME = "audionotes"

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
        }

        # Add exception info if present
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Add extra fields if present
        if hasattr(record, "extra_data"):
            log_obj.update(record.extra_data)

        return json.dumps(log_obj, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> logging.Logger:
    """Install a single stdout handler on the application logger."""
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_audionotes_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))
    handler._audionotes_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


def log_event(logger: logging.Logger, event: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a JSON event line, e.g. ``{"event": "job_completed", ...}``."""
    payload: Dict[str, Any] = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str), extra={"extra_data": payload})


def elapsed_since(start: float, now: Optional[float] = None) -> float:
    """Seconds since ``start`` rounded for log payloads."""
    return round((now if now is not None else time.time()) - start, 3)
