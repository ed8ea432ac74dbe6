"""Logging configuration for the ots-repo project.

Provides a JSON formatted logger named ``ots_repo`` and capacity unit statistics.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_NAME = "ots_repo"
LOG_FILE = Path("logs/app.log")
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

# Attributes every LogRecord carries; anything else came in through ``extra``.
RESERVED_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Formatter returning log records as JSON strings."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short description
        base: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in RESERVED_RECORD_ATTRS
        }
        request_id = extras.pop("request_id", None)
        if request_id is not None:
            base["request_id"] = request_id
        if extras:
            base["extra"] = extras
        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def get_logger() -> logging.Logger:
    """Return the configured project logger.

    Module loggers created with ``logging.getLogger(__name__)`` inside the
    package are children of this logger and share its handlers.
    """
    logger = logging.getLogger(LOG_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    formatter = JsonFormatter()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG)
    stream_handler.setFormatter(formatter)

    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)

    logger.addHandler(stream_handler)
    logger.addHandler(file_handler)
    logger.propagate = False
    return logger


class CapacityStats:
    """Accumulates consumed read/write capacity units reported by Tablestore."""

    def __init__(self) -> None:
        self._read = 0
        self._write = 0
        self._requests = 0
        self._logger = logging.getLogger(LOG_NAME)

    def record(self, consumed: Any) -> None:
        """Record the ``CapacityUnit`` of one response; ``None`` counts as zero."""
        self._requests += 1
        if consumed is None:
            return
        self._read += int(getattr(consumed, "read", 0) or 0)
        self._write += int(getattr(consumed, "write", 0) or 0)

    @property
    def read(self) -> int:
        return self._read

    @property
    def write(self) -> int:
        return self._write

    @property
    def requests(self) -> int:
        return self._requests

    def log_totals(self) -> None:
        """Log the accumulated capacity units."""
        self._logger.info(
            "Capacity units consumed",
            extra={"read_cu": self._read, "write_cu": self._write, "requests": self._requests},
        )
