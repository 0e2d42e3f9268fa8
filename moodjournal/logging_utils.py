# -*- coding: utf-8 -*-
"""Logging helpers for MoodJournal.

Loggers are plain :mod:`logging` loggers wrapped in :class:`AppLogger` so
call sites can pass a context dict without building ``extra`` by hand.
User identifiers and journal text must never be passed as context.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json
import logging


class StructuredJSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            for key, value in context.items():
                if key in log_record:
                    log_record[f"context_{key}"] = value
                else:
                    log_record[key] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class AppLogger:
    """Thin wrapper giving consistent message + context logging."""

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)

    def debug(self, message: str, extra_data: Optional[Dict[str, Any]] = None) -> None:
        self._log("debug", message, extra_data)

    def info(self, message: str, extra_data: Optional[Dict[str, Any]] = None) -> None:
        self._log("info", message, extra_data)

    def warning(self, message: str, extra_data: Optional[Dict[str, Any]] = None) -> None:
        self._log("warning", message, extra_data)

    def encryption_event(
        self,
        event: str,
        success: bool = True,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an encryption-related event; failures go out at WARNING."""
        status = "SUCCESS" if success else "FAILURE"
        level = "debug" if success else "warning"
        self._log(level, f"ENCRYPTION {status}: {event}", extra_data)

    def _log(self, level: str, message: str, extra_data: Optional[Dict[str, Any]]) -> None:
        log_method = getattr(self.logger, level)
        if extra_data:
            extra_info = ", ".join(f"{k}: {v}" for k, v in extra_data.items())
            log_method(f"{message} | Extra: {extra_info}", extra={"context": dict(extra_data)})
        else:
            log_method(message)


def get_crypto_logger() -> AppLogger:
    """Logger for the codec and cipher layers."""
    return AppLogger("moodjournal.crypto")


def get_journal_logger() -> AppLogger:
    """Logger for the service and persistence layers."""
    return AppLogger("moodjournal.journal")


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Attach a single stream handler to the ``moodjournal`` logger tree."""
    root = logging.getLogger("moodjournal")
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
