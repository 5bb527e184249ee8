"""Structured JSON logging for the token service and its CLI."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from flask import Flask

# Structured fields the token service attaches through ``extra=``.
EXTRA_KEYS = ("user_id", "attempt", "removed", "count", "divergence")


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """
    Give every record a ``request_id`` attribute.

    Ids travel with the :class:`~tokenkeeper.services.ServiceContext` and reach
    the record through ``extra=``; records logged outside a context get ``None``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = None
        return True


def configure_logging(level: str | int = "INFO") -> None:
    """Send root logging to stdout as JSON at ``level``."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Attach the request-id filter to the app logger."""

    app.logger.addFilter(RequestIdFilter())


__all__ = ["configure_logging", "init_app", "JSONFormatter", "RequestIdFilter"]
