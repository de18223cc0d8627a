"""
Structured logging for reminder sessions.

Each line is a JSON object carrying the message, the emitting component and
any fields bound to the logger, so one page's lifecycle can be followed by
its client id.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LINE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """JSON-line logger with optional bound context fields."""

    def __init__(self, name: str, level: int = logging.INFO, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.context = dict(context or {})

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter(LINE_FORMAT))
            self.logger.addHandler(handler)

    def bind(self, **fields) -> "StructuredLogger":
        """Return a logger that adds the given fields to every line."""
        return StructuredLogger(self.logger.name, self.logger.level, {**self.context, **fields})

    def _emit(self, level: int, message: str, fields: Dict[str, Any], exc_info: bool = False):
        if not self.logger.isEnabledFor(level):
            return
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": logging.getLevelName(level),
            "component": self.logger.name,
            "message": message,
            **self.context,
            **fields,
        }
        self.logger.log(level, json.dumps(record, default=str), exc_info=exc_info)

    def debug(self, message: str, **fields):
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, **fields):
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields):
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields):
        self._emit(logging.ERROR, message, fields)

    def exception(self, message: str, **fields):
        """Log at ERROR with the active exception's traceback."""
        self._emit(logging.ERROR, message, fields, exc_info=True)


def get_logger(component: str, level: str = "INFO") -> StructuredLogger:
    """
    Get a structured logger.

    Args:
        component: Logger name, e.g. "reminder-sessions"
        level: Level name such as "INFO" or "DEBUG"; unknown names mean INFO
    """
    return StructuredLogger(component, getattr(logging, level.upper(), logging.INFO))
