"""Logging configuration for the shiftwatch service.

Log lines are JSON by default so they can be shipped as-is; structured fields
go in ``extra={"context": {...}}`` and end up under the ``context`` key.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from shiftwatch.config import get_settings

ROOT_LOGGER_NAME = "shiftwatch"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "context") and record.context:
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class LoggingConfig:
    """Configure the root logger once per process."""

    _configured = False

    def __init__(
        self, level: Optional[str] = None, json_output: Optional[bool] = None
    ) -> None:
        settings = get_settings()
        self.level = (level or settings.log_level).upper()
        self.json_output = settings.log_json if json_output is None else json_output
        self.configure()

    def configure(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.level, logging.INFO))

        if LoggingConfig._configured:
            return

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        handler = logging.StreamHandler(sys.stdout)
        if self.json_output:
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        root_logger.addHandler(handler)

        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        LoggingConfig._configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the shiftwatch namespace."""
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
