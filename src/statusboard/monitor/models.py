"""Data models for services, stat entries and incidents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ServiceStatus(str, Enum):
    OPERATIONAL = "operational"
    DEGRADED = "degraded"
    OFFLINE = "offline"
    MAINTENANCE = "maintenance"


class IncidentStatus(str, Enum):
    INVESTIGATING = "investigating"
    IDENTIFIED = "identified"
    MONITORING = "monitoring"
    RESOLVED = "resolved"


class IncidentImpact(str, Enum):
    MINOR = "minor"
    DEGRADED = "degraded"
    MAJOR = "major"
    CRITICAL = "critical"


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_iso(value: datetime) -> str:
    return value.astimezone(UTC).isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 instant, accepting a trailing ``Z``. Naive values are UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


@dataclass
class StatEntry:
    """One probe result, or an empty placeholder bucket when ``status`` is None."""

    timestamp: str
    status: ServiceStatus | None
    ping_ms: int = 0
    response_time_ms: int = 0
    request_count: int = 0
    uptime_percentage: int = 0

    @classmethod
    def placeholder(cls) -> StatEntry:
        return cls(timestamp="", status=None)

    @property
    def is_placeholder(self) -> bool:
        return self.status is None

    @property
    def epoch_ms(self) -> int:
        return to_epoch_ms(parse_timestamp(self.timestamp))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "status": self.status.value if self.status else "",
            "ping_ms": self.ping_ms,
            "response_time_ms": self.response_time_ms,
            "request_count": self.request_count,
            "uptime_percentage": self.uptime_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatEntry:
        raw_status = data.get("status") or ""
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            status=ServiceStatus(raw_status) if raw_status else None,
            ping_ms=int(data.get("ping_ms") or 0),
            response_time_ms=int(data.get("response_time_ms") or 0),
            request_count=int(data.get("request_count") or 0),
            uptime_percentage=int(data.get("uptime_percentage") or 0),
        )


@dataclass
class Service:
    """A monitored endpoint."""

    id: str
    name: str
    domain: str
    status: ServiceStatus = ServiceStatus.OPERATIONAL
    is_pinned: bool = False
    ping_ms: int = 0
    description: str | None = None
    created_at: str = field(default_factory=lambda: to_iso(utc_now()))
    updated_at: str = field(default_factory=lambda: to_iso(utc_now()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
            "status": self.status.value,
            "is_pinned": self.is_pinned,
            "ping_ms": self.ping_ms,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class IncidentUpdate:
    id: str
    incident_id: str
    message: str
    status: IncidentStatus
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "incident_id": self.incident_id,
            "message": self.message,
            "status": self.status.value,
            "created_at": self.created_at,
        }


@dataclass
class Incident:
    """A period during which a service was not operational."""

    id: str
    service_id: str
    title: str
    description: str
    status: IncidentStatus
    impact: IncidentImpact
    started_at: str
    resolved_at: str | None = None
    updates: list[IncidentUpdate] = field(default_factory=list)
    service_name: str | None = None

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "service_id": self.service_id,
            "service": {"name": self.service_name} if self.service_name is not None else None,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "impact": self.impact.value,
            "started_at": self.started_at,
            "resolved_at": self.resolved_at,
            "updates": [u.to_dict() for u in self.updates],
        }


@dataclass
class StatWindow:
    """A service's stored sample history plus its boundary markers."""

    service_id: str
    stats: list[StatEntry] = field(default_factory=list)
    oldest_timestamp: str | None = None
    newest_timestamp: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_id": self.service_id,
            "stats": [s.to_dict() for s in self.stats],
            "oldest_timestamp": self.oldest_timestamp,
            "newest_timestamp": self.newest_timestamp,
            "updated_at": self.updated_at,
        }
