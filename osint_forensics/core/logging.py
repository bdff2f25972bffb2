"""
Structured Logging Module
=========================

JSON-lines logging for the investigation engine. Every record carries the
keyword context it was logged with, so a stage transition can be traced by
investigation id and pipeline kind.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional


class StructuredFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Each object holds:
    - timestamp: ISO 8601 UTC timestamp
    - level: Log level name
    - logger: Logger name
    - message: Log message
    - location: file, line and function of the call site
    - context: keyword fields passed to the logger (omitted when empty)
    - exception: formatted traceback, when present
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Wrapper around logging.Logger that accepts keyword context.

    Usage:
        logger = get_logger(__name__)
        logger.info("Stage completed", pipeline="alias-mapping", items=3)

        run_logger = logger.bind(investigation_id="inv_1")
        run_logger.warning("Stage failed", error="timeout")
    """

    def __init__(
        self,
        name: str,
        level: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name (typically __name__)
            level: Optional log level override
            context: Fields added to every record from this logger
        """
        self._logger = logging.getLogger(name)
        self._context = dict(context or {})

        if level:
            self._logger.setLevel(getattr(logging, level.upper()))

        # Records propagate to the root handler once configure_root_logger ran
        if not self._logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter())
            self._logger.addHandler(handler)

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **context: Any) -> "StructuredLogger":
        """Return a logger that adds ``context`` to every record."""
        child = StructuredLogger.__new__(StructuredLogger)
        child._logger = self._logger
        child._context = {**self._context, **context}
        return child

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        context = {**self._context, **kwargs}
        extra = {"context": context} if context else {}
        self._logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, message, exc_info=exc_info, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an error with the active exception's traceback."""
        self._log(logging.ERROR, message, exc_info=True, **kwargs)


@lru_cache()
def get_logger(name: str, level: Optional[str] = None) -> StructuredLogger:
    """
    Get a cached structured logger instance.

    Args:
        name: Logger name (typically __name__)
        level: Optional log level override

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name, level)


def configure_root_logger(level: str = "INFO") -> None:
    """
    Configure the root logger with structured formatting.

    This should be called once at application startup.

    Args:
        level: Log level for the root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(handler)
