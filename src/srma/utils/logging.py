"""Structured logging configuration.

Pipeline stages attach context through the standard ``extra`` mapping,
e.g. ``logger.info("pooled", extra={"stage": "meta", "metric": "R2"})``.
The JSON formatter lifts the recognised context keys into the emitted
object; the text formatter ignores them.
"""

import logging
import json
import sys
from typing import Any, Dict, Optional

from ..config.settings import settings

CONTEXT_KEYS = ("stage", "metric", "k", "path")


class JSONFormatter(logging.Formatter):
    """Format logs as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value if isinstance(value, (int, float, bool)) else str(value)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Return a module logger writing to stdout.

    Handlers are attached once per logger name, so repeated calls are
    cheap. ``level`` overrides ``settings.log_level`` for this logger.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if settings.log_format == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))
    return logger
