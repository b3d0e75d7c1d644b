"""
Formatters: JSON Lines for the rotating file, plain text for the console.
"""
from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

# Attributes every LogRecord has; anything else arrived through ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line. Values passed via ``extra=`` (owner_id,
    record_id, external_event_id, ...) are collected under ``"extra"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "lineno": record.lineno,
        }
        if record.exc_info:
            log_dict["exception"] = "".join(
                traceback.format_exception(*record.exc_info)
            ).strip()
        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if extra:
            log_dict["extra"] = extra
        return json.dumps(log_dict, default=str, ensure_ascii=False)


def _utc_iso(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat()


class PlainConsoleFormatter(logging.Formatter):
    """Human-readable format for console."""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None) -> None:
        super().__init__(
            fmt=fmt or "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt=datefmt or "%Y-%m-%d %H:%M:%S",
        )
