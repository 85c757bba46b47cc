"""User-facing sync messages (toasts in a UI, printed lines in the CLI)."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"[{self.level}] {self.message}"


class NotificationLog:
    """Bounded outbox of messages for whoever presents sync results."""

    def __init__(self, max_items: int = 50) -> None:
        self._items: deque[Notification] = deque(maxlen=max_items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, level: str, message: str, context: dict[str, Any] | None = None) -> Notification:
        note = Notification(level, message, dict(context or {}))
        self._items.append(note)
        return note

    def recent(self, limit: int | None = None, level: str | None = None) -> list[Notification]:
        """Newest first."""
        items = [n for n in reversed(self._items) if level is None or n.level == level]
        return items if limit is None else items[:limit]

    def take(self) -> list[Notification]:
        """Hand over everything queued so far, oldest first, and forget it."""
        items = list(self._items)
        self._items.clear()
        return items


NOTIFICATIONS = NotificationLog()

__all__ = ["NOTIFICATIONS", "Notification", "NotificationLog"]
