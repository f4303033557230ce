"""
Structured logging for the resource admin backend.

Loggers obtained through ``get_logger`` accept keyword context:

    logger.info("Batch action performed", resource="Article", action="destroy", count=3)

The keywords travel on the record as ``extra_data`` and are rendered either
as JSON (one object per line, for log aggregation) or as a colored
single-line text format for development. ``LOG_FORMAT`` picks the renderer;
``auto`` means JSON in production and text elsewhere.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from admin_shared.config.settings import settings

SERVICE_NAME = "resource-admin"

# Third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "multipart")


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            entry["request_id"] = request_id

        data = getattr(record, "extra_data", None)
        if data:
            # Promote the resource type so log queries can group by it
            if "resource" in data:
                entry["resource"] = data["resource"]
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            entry["source"] = f"{record.pathname}:{record.lineno} in {record.funcName}"

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Colored single-line output:

        [12:01:33] INFO     [3f2a9c1e] resource_admin.resources.batch: Batch action performed (action=destroy | count=2)
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        parts = [f"{color}[{timestamp}] {record.levelname:8}{self.RESET}"]

        request_id = getattr(record, "request_id", "-")
        if request_id != "-":
            parts.append(f"{self.DIM}[{request_id[:8]}]{self.RESET}")

        parts.append(f"{record.name}: {record.getMessage()}")
        line = " ".join(parts)

        data = getattr(record, "extra_data", None)
        if data:
            line += " (" + " | ".join(f"{key}={value}" for key, value in data.items()) + ")"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


# =============================================================================
# Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """
    Logger whose level methods take keyword context.

    ``exc_info``, ``stack_info``, ``stacklevel`` and ``extra`` keep their
    standard meaning; every other keyword goes into ``extra_data``.
    """

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1, **context):
        extra = dict(extra or {})
        extra["extra_data"] = context or None
        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 2,  # skip the level method and this override
        )

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.DEBUG):
            self._log(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.INFO):
            self._log(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.WARNING):
            self._log(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.ERROR):
            self._log(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.CRITICAL):
            self._log(logging.CRITICAL, msg, args, **kwargs)


logging.setLoggerClass(StructuredLogger)


# =============================================================================
# Setup
# =============================================================================


def _use_json() -> bool:
    if settings.log_format == "json":
        return True
    if settings.log_format == "text":
        return False
    return settings.environment == "production"


def setup_logging() -> None:
    """
    Configure the root logger. Call once at startup (server or CLI).
    """
    from admin_shared.infrastructure.correlation import CorrelationIdFilter

    level = logging.DEBUG if settings.debug else logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(StructuredFormatter() if _use_json() else DevelopmentFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    third_party_level = logging.DEBUG if level == logging.DEBUG and settings.database_echo else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Usage:
        from admin_shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Batch action performed", resource="Article", count=3)
        logger.error("Failed to destroy records", resource="Article", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


resource_admin_logger = get_logger("resource_admin")
