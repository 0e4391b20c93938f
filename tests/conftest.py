"""Shared fixtures for statusboard tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from statusboard.config.models import StatusboardConfig
from statusboard.monitor.models import ServiceStatus, StatEntry, to_iso
from statusboard.store.memory import InMemoryStore
from statusboard.store.sqlite import SqliteStore

SAMPLE_CONFIG: Dict[str, Any] = {
    "site": {"title": "Acme Status", "version": "1.2.0"},
    "monitor": {"interval_seconds": 60, "probe_timeout": 8.0, "window_days": 90, "concurrency": 1},
    "store": {"backend": "memory"},
    "services": {
        "api": {
            "name": "API",
            "url": "https://api.example.com/health",
            "description": "Public REST API",
            "pinned": True,
        },
        "web": {
            "name": "Website",
            "url": "https://www.example.com",
        },
    },
}

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def make_entry(
    at: datetime,
    status: ServiceStatus = ServiceStatus.OPERATIONAL,
    ping: int = 100,
) -> StatEntry:
    """A probe-shaped entry at *at*."""
    up = status is ServiceStatus.OPERATIONAL
    return StatEntry(
        timestamp=to_iso(at),
        status=status,
        ping_ms=ping,
        response_time_ms=ping,
        request_count=0 if status is ServiceStatus.OFFLINE else 1,
        uptime_percentage=100 if up else (50 if status is ServiceStatus.DEGRADED else 0),
    )


def minutes_ago(n: float) -> datetime:
    return NOW - timedelta(minutes=n)


@pytest.fixture()
def sample_config() -> StatusboardConfig:
    """Return a parsed StatusboardConfig from sample data."""
    return StatusboardConfig(**SAMPLE_CONFIG)


@pytest.fixture()
def sample_config_dict() -> Dict[str, Any]:
    """Return raw sample config dict."""
    return dict(SAMPLE_CONFIG)


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Write sample config to a temp .statusboard.yaml and return the path."""
    path = tmp_path / ".statusboard.yaml"
    with path.open("w") as fh:
        yaml.dump(SAMPLE_CONFIG, fh)
    return path


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path):
    """Each store backend, empty."""
    if request.param == "memory":
        return InMemoryStore()
    return SqliteStore(str(tmp_path / "status.db"))
