"""
Structured logging for topicbus.

Every record is one JSON object:
 - ts, level, logger, msg
 - fields passed through ``extra=log_extra(...)`` merged at top level
 - exc (formatted traceback) when the record carries exc_info

Level comes from LOG_LEVEL (default INFO); settings may override it.
"""

from __future__ import annotations
import logging
import json
import datetime
import os
import sys
from typing import Any


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # merge extra fields
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            for k, v in extra.items():
                payload.setdefault(k, v)

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logger(name: str) -> logging.Logger:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger


# package logger; module loggers (topicbus.*) propagate into it
logger = setup_logger("topicbus")


def log_extra(**kwargs: Any) -> dict:
    return {"extra": kwargs}


def set_level(level: str) -> None:
    logger.setLevel(str(level).upper())
