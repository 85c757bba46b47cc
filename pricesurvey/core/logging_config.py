"""JSON logging for the field agent and the collaborator service."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from pythonjsonlogger import jsonlogger

from pricesurvey.core.config import settings

_CONFIGURED = False
_LOG_BUFFER: deque[dict[str, str]] = deque(maxlen=settings.log_buffer_size)

# Held at WARNING regardless of the root level
_QUIET_LOGGERS = ("httpx", "httpcore", "multipart")


class _ServiceFilter(logging.Filter):
    """Stamp every record with the emitting process."""

    def __init__(self, service: str) -> None:
        super().__init__()
        self.service = service

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service
        return True


class _RecentLogHandler(logging.Handler):
    """Keeps the newest records in memory for GET /api/logs."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "time": datetime.fromtimestamp(record.created, tz=timezone.utc)
                .isoformat()
                .replace("+00:00", "Z"),
                "level": record.levelname,
                "service": getattr(record, "service", ""),
                "name": record.name,
                "message": record.getMessage(),
            }
        except (TypeError, ValueError):
            self.handleError(record)
            return
        pending_id = getattr(record, "pending_id", None)
        if pending_id:
            entry["pendingId"] = str(pending_id)
        _LOG_BUFFER.appendleft(entry)


def setup_logging(service_name: Optional[str] = None, level: Optional[str] = None) -> None:
    """Install the JSON handler on the root logger once per process."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    service = service_name or settings.app_name.lower().replace(" ", "-")
    service_filter = _ServiceFilter(service)

    stream = logging.StreamHandler()
    stream.setFormatter(
        jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(service)s")
    )
    stream.addFilter(service_filter)
    recent = _RecentLogHandler()
    recent.addFilter(service_filter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(stream)
    root.addHandler(recent)
    root.setLevel((level or settings.log_level).upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.captureWarnings(True)
    _CONFIGURED = True


def get_log_buffer(limit: int = 100, level: Optional[str] = None) -> list[dict[str, str]]:
    """Newest entries first, optionally only those at or above ``level``."""
    entries = list(_LOG_BUFFER)
    if level:
        threshold = logging.getLevelName(level.upper())
        if isinstance(threshold, int):
            entries = [e for e in entries if logging.getLevelName(e["level"]) >= threshold]
    return entries[:limit]


__all__ = ["get_log_buffer", "setup_logging"]
