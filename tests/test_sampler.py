"""Tests for the HTTP probe."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from statusboard.monitor.models import ServiceStatus
from statusboard.monitor.sampler import probe


def _mock_client(mock_cls, **head_kwargs) -> AsyncMock:
    mock_client = AsyncMock()
    for key, value in head_kwargs.items():
        setattr(mock_client.head, key, value)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_cls.return_value = mock_client
    return mock_client


class TestProbe:
    @pytest.mark.asyncio
    async def test_success_is_operational(self):
        with (
            patch("statusboard.monitor.sampler.httpx.AsyncClient") as mock_cls,
            patch("statusboard.monitor.sampler._clock", side_effect=[10.0, 10.12]),
        ):
            client = _mock_client(mock_cls, return_value=httpx.Response(200))
            entry = await probe("https://api.example.com/health")

        client.head.assert_called_once_with("https://api.example.com/health")
        assert entry.status is ServiceStatus.OPERATIONAL
        assert entry.ping_ms == 120
        assert entry.response_time_ms == 120
        assert entry.request_count == 1
        assert entry.uptime_percentage == 100
        assert entry.timestamp

    @pytest.mark.asyncio
    async def test_redirect_follow_is_requested(self):
        with patch("statusboard.monitor.sampler.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls, return_value=httpx.Response(204))
            entry = await probe("https://example.com", timeout=3.0)

        mock_cls.assert_called_once_with(timeout=3.0, follow_redirects=True)
        assert entry.status is ServiceStatus.OPERATIONAL

    @pytest.mark.asyncio
    async def test_server_error_is_degraded(self):
        with (
            patch("statusboard.monitor.sampler.httpx.AsyncClient") as mock_cls,
            patch("statusboard.monitor.sampler._clock", side_effect=[0.0, 0.25]),
        ):
            _mock_client(mock_cls, return_value=httpx.Response(503))
            entry = await probe("https://example.com")

        assert entry.status is ServiceStatus.DEGRADED
        assert entry.ping_ms == 250
        assert entry.request_count == 1
        assert entry.uptime_percentage == 50

    @pytest.mark.asyncio
    async def test_not_found_is_degraded(self):
        with patch("statusboard.monitor.sampler.httpx.AsyncClient") as mock_cls:
            _mock_client(mock_cls, return_value=httpx.Response(404))
            entry = await probe("https://example.com/missing")

        assert entry.status is ServiceStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_connection_error_is_offline(self):
        with (
            patch("statusboard.monitor.sampler.httpx.AsyncClient") as mock_cls,
            patch("statusboard.monitor.sampler._clock", side_effect=[5.0, 5.03]),
        ):
            _mock_client(mock_cls, side_effect=httpx.ConnectError("Connection refused"))
            entry = await probe("https://down.example.com")

        assert entry.status is ServiceStatus.OFFLINE
        assert entry.ping_ms == 30
        assert entry.request_count == 0
        assert entry.uptime_percentage == 0

    @pytest.mark.asyncio
    async def test_timeout_is_offline_and_bounded(self):
        with (
            patch("statusboard.monitor.sampler.httpx.AsyncClient") as mock_cls,
            patch("statusboard.monitor.sampler._clock", side_effect=[100.0, 108.5]),
        ):
            _mock_client(mock_cls, side_effect=httpx.ReadTimeout("timed out"))
            entry = await probe("https://slow.example.com", timeout=8.0)

        assert entry.status is ServiceStatus.OFFLINE
        assert entry.ping_ms == 8000
        assert entry.response_time_ms == 8000

    @pytest.mark.asyncio
    async def test_overall_deadline_is_offline(self):
        async def _hang(url):
            await asyncio.sleep(5)

        with patch("statusboard.monitor.sampler.httpx.AsyncClient") as mock_cls:
            client = _mock_client(mock_cls)
            client.head = _hang
            entry = await probe("https://hang.example.com", timeout=0.05)

        assert entry.status is ServiceStatus.OFFLINE
        assert entry.ping_ms <= 50
