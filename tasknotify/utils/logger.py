"""
Structured Logging Utility.

Emits one JSON object per log line so every notification-engine event carries
its record context (notification id, type, channel, retry count) as fields.
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for notification engine components."""

    def __init__(self, name: str, level: int = logging.INFO):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            level: Logging level
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Prevent adding handlers multiple times
        if not self.logger.handlers:
            self._setup_handlers()

    @property
    def name(self) -> str:
        return self.logger.name

    def _setup_handlers(self):
        """Set up logging handlers."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(formatter)

        self.logger.addHandler(console_handler)

    def _build_record(self, level: int, message: str, fields: Dict[str, Any]) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": logging.getLevelName(level),
            "message": message,
            "service": self.logger.name,
        }
        log_data.update(fields)
        # Datetimes, enums and UUIDs fall back to their string form
        return json.dumps(log_data, default=str)

    def _log_structured(self, level: int, message: str, **kwargs):
        """
        Log a structured message.

        Args:
            level: Logging level
            message: Log message
            **kwargs: Additional structured data
        """
        if self.logger.isEnabledFor(level):
            self.logger.log(level, self._build_record(level, message, kwargs))

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._log_structured(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._log_structured(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._log_structured(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self._log_structured(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        if self.logger.isEnabledFor(logging.ERROR):
            kwargs["exception"] = True
            self.logger.exception(self._build_record(logging.ERROR, message, kwargs))


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger for the given component.

    Args:
        name: Logger name, usually the module's ``__name__``

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)
