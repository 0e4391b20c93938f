"""Fire-and-forget webhook delivery of monitor events."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
from typing import TYPE_CHECKING

import httpx

from statusboard.events.emitter import MonitorEvent

if TYPE_CHECKING:
    from statusboard.config.models import WebhookConfig

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Statusboard-Signature"


def sign(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class WebhookListener:
    """POSTs matching events to each configured URL without blocking the emitter."""

    def __init__(self, webhooks: list[WebhookConfig], timeout: float = 10.0) -> None:
        self._webhooks = webhooks
        self._timeout = timeout
        self._pending: set[asyncio.Task[None]] = set()

    async def on_event(self, event: MonitorEvent) -> None:
        for wh in self._webhooks:
            if "*" not in wh.events and event.event_type not in wh.events:
                continue
            task = asyncio.create_task(self._deliver(wh, event), name=f"webhook-{wh.url}")
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight deliveries; used before a CLI process exits."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _deliver(self, wh: WebhookConfig, event: MonitorEvent) -> None:
        # Sign and send the exact same bytes
        body = json.dumps(event.to_dict()).encode()
        headers = {"Content-Type": "application/json"}
        if wh.secret:
            headers[SIGNATURE_HEADER] = sign(wh.secret, body)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(wh.url, content=body, headers=headers)
            if resp.status_code >= 400:
                logger.warning("Webhook %s answered %d for %s", wh.url, resp.status_code, event.event_type)
        except httpx.HTTPError:
            logger.exception("Webhook delivery failed for %s (event: %s)", wh.url, event.event_type)
