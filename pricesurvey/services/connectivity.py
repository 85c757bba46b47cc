"""Online/offline state pushed by the runtime."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Callable

import httpx

from pricesurvey.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectivityChange:
    online: bool
    changed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[ConnectivityChange], None]


class ConnectivityMonitor:
    """Tracks reachability transitions. Never polls; callers push signals."""

    def __init__(self, online: bool = True) -> None:
        self._online = online
        self._listeners: list[Listener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> bool:
        """Record a reachability signal. Returns True when it was a transition."""
        if online == self._online:
            return False
        self._online = online
        change = ConnectivityChange(online=online)
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            listener(change)
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def changes(self) -> AsyncIterator[ConnectivityChange]:
        """Yield transitions as they happen."""
        queue: asyncio.Queue[ConnectivityChange] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()


async def check_reachability(
    base_url: str | None = None,
    timeout: float = 5.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """One-shot health check used to seed the monitor at startup."""
    url = f"{(base_url or settings.api_base_url).rstrip('/')}/health"
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
        return response.status_code < 500
    except httpx.HTTPError as exc:
        logger.info("Reachability check failed for %s: %s", url, exc)
        return False


__all__ = ["ConnectivityChange", "ConnectivityMonitor", "check_reachability"]
