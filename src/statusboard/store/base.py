"""Storage protocol shared by the in-memory and SQLite backends."""

from __future__ import annotations

import uuid
from typing import Any, Literal, Protocol, runtime_checkable

from statusboard.monitor.models import (
    Incident,
    IncidentStatus,
    IncidentUpdate,
    Service,
    StatEntry,
    StatWindow,
)

IncidentFilter = Literal["active", "resolved"] | None

SERVICE_FIELDS = frozenset({"name", "domain", "description", "is_pinned", "status", "ping_ms"})
INCIDENT_FIELDS = frozenset({"title", "description", "status", "impact"})


def new_id() -> str:
    return uuid.uuid4().hex


def check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown field(s): {', '.join(sorted(unknown))}")


def window_bounds(stats: list[StatEntry]) -> tuple[str | None, str | None]:
    if not stats:
        return None, None
    return stats[0].timestamp, stats[-1].timestamp


@runtime_checkable
class StatusStore(Protocol):
    """Read/upsert/delete contract for services, stat windows and incidents."""

    async def list_services(self) -> list[Service]: ...
    async def get_service(self, service_id: str) -> Service | None: ...
    async def create_service(self, service: Service) -> Service: ...
    async def update_service(self, service_id: str, **fields: Any) -> Service | None: ...
    async def delete_service(self, service_id: str) -> bool: ...

    async def get_window(self, service_id: str) -> list[StatEntry]: ...
    async def save_window(self, service_id: str, stats: list[StatEntry], updated_at: str) -> StatWindow: ...
    async def list_windows(self) -> list[StatWindow]: ...
    async def last_updated(self) -> str | None: ...

    async def get_incident(self, incident_id: str) -> Incident | None: ...
    async def get_open_incident(self, service_id: str) -> Incident | None: ...
    async def open_incident(self, incident: Incident) -> Incident | None: ...
    async def resolve_incident(self, incident_id: str, resolved_at: str, message: str) -> Incident | None: ...
    async def reopen_incident(self, incident_id: str, message: str, reopened_at: str) -> Incident | None: ...
    async def update_incident(self, incident_id: str, **fields: Any) -> Incident | None: ...
    async def add_incident_update(
        self, incident_id: str, message: str, status: IncidentStatus, created_at: str
    ) -> IncidentUpdate | None: ...
    async def delete_incident(self, incident_id: str) -> bool: ...
    async def list_incidents(self, state: IncidentFilter = None, limit: int | None = None) -> list[Incident]: ...
