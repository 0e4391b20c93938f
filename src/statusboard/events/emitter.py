"""Monitor events and the emitter that fans them out to listeners."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from statusboard.config.models import StatusboardConfig

logger = logging.getLogger(__name__)

EVENT_TYPES = frozenset({
    "incident.opened",
    "incident.resolved",
    "service.status_changed",
    "cycle.completed",
})


@dataclass
class MonitorEvent:
    """Something the monitor cycle observed or changed."""

    event_type: str
    timestamp: datetime
    service_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "service_id": self.service_id,
            "data": self.data,
        }


class EventListener(Protocol):
    async def on_event(self, event: MonitorEvent) -> None: ...


class EventEmitter:
    """Dispatches events to listeners; a failing listener never breaks the cycle."""

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    async def emit(self, event: MonitorEvent) -> None:
        for listener in self._listeners:
            try:
                await listener.on_event(event)
            except Exception:
                logger.exception("Event listener error (%s)", event.event_type)

    async def drain(self) -> None:
        """Wait for listeners that deliver in the background (webhooks)."""
        for listener in self._listeners:
            drain = getattr(listener, "drain", None)
            if drain is not None:
                await drain()


def create_cli_emitter(config: StatusboardConfig) -> EventEmitter | None:
    """Webhook-only emitter for CLI-driven cycles; None when no webhooks are configured."""
    if not config.webhooks:
        return None
    from statusboard.events.webhook import WebhookListener

    emitter = EventEmitter()
    emitter.add_listener(WebhookListener(config.webhooks))
    return emitter
