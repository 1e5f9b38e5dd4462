"""
JSON log output for the detector.

Every record is one JSON object per line on stdout. Loggers are namespaced
under the configured service name, so two detectors built from different
configurations log under different roots.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any

LOGGER_NAME = "needle_finder"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class JSONFormatter(logging.Formatter):
    """
    Render records as single-line JSON.

    Example line:
        {"timestamp": "2025-01-15 10:30", "level": "INFO",
         "logger": "needle_finder.detector", "message": "Detection completed",
         "extra": {"found": true, "accepted_matches": 42}}
    """

    converter = time.gmtime

    def __init__(self) -> None:
        super().__init__(datefmt=TIMESTAMP_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = _extra_fields(record)
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, default=str)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


def setup_logging(level: str, service_name: str = LOGGER_NAME) -> logging.Logger:
    """
    Attach a single stdout JSON handler to the service's root logger.

    Calling it again replaces the handler, so reconfiguring never duplicates
    output. The logger stops propagating to the interpreter's root logger.

    Raises:
        ValueError: If level is not a valid log level name
    """
    level_name = level.upper()
    if level_name not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of {sorted(VALID_LOG_LEVELS)}")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    logger = logging.getLogger(service_name)
    logger.handlers = [handler]
    logger.setLevel(level_name)
    logger.propagate = False
    return logger


def get_logger(component: str, service_name: str = LOGGER_NAME) -> logging.Logger:
    """Logger for one component under the service's namespace, e.g. "needle_finder.detector"."""
    return logging.getLogger(f"{service_name}.{component}")
