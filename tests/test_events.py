"""Tests for the monitor event system: emitter, log, and webhook delivery."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from statusboard.config.models import StatusboardConfig, WebhookConfig
from statusboard.events.emitter import EventEmitter, MonitorEvent, create_cli_emitter
from statusboard.events.log import EventLog
from statusboard.events.webhook import SIGNATURE_HEADER, WebhookListener, sign


def _event(event_type: str = "incident.opened", service_id: str | None = "api") -> MonitorEvent:
    return MonitorEvent(
        event_type=event_type,
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        service_id=service_id,
        data={"incident_id": "i1"},
    )


class TestMonitorEvent:
    def test_to_dict(self):
        assert _event().to_dict() == {
            "event_type": "incident.opened",
            "timestamp": "2024-05-01T12:00:00+00:00",
            "service_id": "api",
            "data": {"incident_id": "i1"},
        }


# ─── EventEmitter tests ───


class TestEventEmitter:
    @pytest.mark.asyncio
    async def test_emit_to_listeners(self):
        emitter = EventEmitter()
        first, second = AsyncMock(), AsyncMock()
        emitter.add_listener(first)
        emitter.add_listener(second)
        evt = _event()
        await emitter.emit(evt)
        first.on_event.assert_called_once_with(evt)
        second.on_event.assert_called_once_with(evt)

    @pytest.mark.asyncio
    async def test_listener_error_does_not_propagate(self):
        emitter = EventEmitter()
        bad = AsyncMock()
        bad.on_event.side_effect = RuntimeError("listener crash")
        good = AsyncMock()
        emitter.add_listener(bad)
        emitter.add_listener(good)
        await emitter.emit(_event())
        good.on_event.assert_called_once()

    def test_cli_emitter_none_without_webhooks(self):
        assert create_cli_emitter(StatusboardConfig()) is None

    def test_cli_emitter_with_webhooks(self):
        config = StatusboardConfig(webhooks=[WebhookConfig(url="https://hooks.test")])
        assert isinstance(create_cli_emitter(config), EventEmitter)


# ─── EventLog tests ───


class TestEventLog:
    @pytest.mark.asyncio
    async def test_newest_first_and_bounded(self):
        log = EventLog(max_size=3)
        for n in range(5):
            await log.on_event(_event(service_id=f"s{n}"))
        recent = await log.get_recent()
        assert [e.service_id for e in recent] == ["s4", "s3", "s2"]

    @pytest.mark.asyncio
    async def test_filters(self):
        log = EventLog()
        await log.on_event(_event("incident.opened", "api"))
        await log.on_event(_event("cycle.completed", None))
        await log.on_event(_event("incident.resolved", "web"))
        assert len(await log.get_recent(event_type="cycle.completed")) == 1
        assert [e.event_type for e in await log.get_recent(service_id="web")] == ["incident.resolved"]
        assert len(await log.get_recent(limit=2)) == 2


# ─── WebhookListener tests ───


def _mock_post(mock_cls, response: httpx.Response | None = None, error: Exception | None = None) -> AsyncMock:
    mock_client = AsyncMock()
    if error is not None:
        mock_client.post.side_effect = error
    else:
        mock_client.post.return_value = response or httpx.Response(200)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_cls.return_value = mock_client
    return mock_client


class TestWebhookListener:
    @pytest.mark.asyncio
    async def test_delivers_signed_body(self):
        wh = WebhookConfig(url="https://hooks.test/in", secret="k3y")
        listener = WebhookListener([wh])
        with patch("statusboard.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_post(mock_cls)
            await listener.on_event(_event())
            await listener.drain()

        client.post.assert_called_once()
        args, kwargs = client.post.call_args
        assert args == ("https://hooks.test/in",)
        body = kwargs["content"]
        assert json.loads(body)["event_type"] == "incident.opened"
        assert kwargs["headers"][SIGNATURE_HEADER] == sign("k3y", body)

    @pytest.mark.asyncio
    async def test_unsigned_without_secret(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.test")])
        with patch("statusboard.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_post(mock_cls)
            await listener.on_event(_event())
            await listener.drain()
        assert SIGNATURE_HEADER not in client.post.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_event_filter(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.test", events=["incident.resolved"])])
        with patch("statusboard.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_post(mock_cls)
            await listener.on_event(_event("incident.opened"))
            await listener.drain()
        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_wildcard(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.test", events=["*"])])
        with patch("statusboard.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_post(mock_cls)
            await listener.on_event(_event("cycle.completed", None))
            await listener.drain()
        client.post.assert_called_once()

    @pytest.mark.asyncio
    async def test_delivery_failure_is_logged(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.test")])
        with patch("statusboard.events.webhook.httpx.AsyncClient") as mock_cls:
            _mock_post(mock_cls, error=httpx.ConnectError("refused"))
            await listener.on_event(_event())
            await listener.drain()

    @pytest.mark.asyncio
    async def test_emitter_drain_waits_for_delivery(self):
        listener = WebhookListener([WebhookConfig(url="https://hooks.test")])
        emitter = EventEmitter()
        emitter.add_listener(listener)
        with patch("statusboard.events.webhook.httpx.AsyncClient") as mock_cls:
            client = _mock_post(mock_cls)
            await emitter.emit(_event())
            await emitter.drain()
        client.post.assert_called_once()
