"""Monitor event fan-out: in-memory log and webhooks."""

from __future__ import annotations

from statusboard.events.emitter import EVENT_TYPES, EventEmitter, EventListener, MonitorEvent, create_cli_emitter
from statusboard.events.log import EventLog
from statusboard.events.webhook import WebhookListener

__all__ = [
    "EVENT_TYPES",
    "EventEmitter",
    "EventListener",
    "EventLog",
    "MonitorEvent",
    "WebhookListener",
    "create_cli_emitter",
]
