"""Bounded ring buffer of recent monitor events, served by /api/events."""

from __future__ import annotations

import asyncio
from collections import deque

from statusboard.events.emitter import MonitorEvent


class EventLog:
    def __init__(self, max_size: int = 100) -> None:
        self._events: deque[MonitorEvent] = deque(maxlen=max_size)
        self._lock = asyncio.Lock()

    async def on_event(self, event: MonitorEvent) -> None:
        async with self._lock:
            self._events.append(event)

    async def get_recent(
        self,
        limit: int = 20,
        event_type: str | None = None,
        service_id: str | None = None,
    ) -> list[MonitorEvent]:
        """Newest first, optionally filtered by type and service."""
        async with self._lock:
            snapshot = list(self._events)
        matched = [
            e
            for e in reversed(snapshot)
            if (event_type is None or e.event_type == event_type)
            and (service_id is None or e.service_id == service_id)
        ]
        return matched[:limit]
