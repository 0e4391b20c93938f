"""In-memory store, used for tests and single-process deployments without a database."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

from statusboard.errors import IncidentConflictError
from statusboard.monitor.models import (
    Incident,
    IncidentStatus,
    IncidentUpdate,
    Service,
    StatEntry,
    StatWindow,
    to_iso,
    utc_now,
)
from statusboard.store.base import (
    INCIDENT_FIELDS,
    SERVICE_FIELDS,
    IncidentFilter,
    check_fields,
    new_id,
    window_bounds,
)


class InMemoryStore:
    """Dict-backed store. Safe for concurrent tasks via an asyncio lock."""

    def __init__(self) -> None:
        self._services: dict[str, Service] = {}
        self._windows: dict[str, StatWindow] = {}
        self._incidents: dict[str, Incident] = {}
        self._lock = asyncio.Lock()

    # ─── services ───

    async def list_services(self) -> list[Service]:
        async with self._lock:
            services = [copy.deepcopy(s) for s in self._services.values()]
        services.sort(key=lambda s: (not s.is_pinned, s.name))
        return services

    async def get_service(self, service_id: str) -> Service | None:
        async with self._lock:
            service = self._services.get(service_id)
            return copy.deepcopy(service) if service else None

    async def create_service(self, service: Service) -> Service:
        async with self._lock:
            if service.id in self._services:
                raise ValueError(f"Service already exists: {service.id}")
            self._services[service.id] = copy.deepcopy(service)
            return copy.deepcopy(service)

    async def update_service(self, service_id: str, **fields: Any) -> Service | None:
        check_fields(fields, SERVICE_FIELDS)
        async with self._lock:
            service = self._services.get(service_id)
            if service is None:
                return None
            for key, value in fields.items():
                setattr(service, key, value)
            service.updated_at = to_iso(utc_now())
            return copy.deepcopy(service)

    async def delete_service(self, service_id: str) -> bool:
        async with self._lock:
            if self._services.pop(service_id, None) is None:
                return False
            self._windows.pop(service_id, None)
            for incident_id in [i.id for i in self._incidents.values() if i.service_id == service_id]:
                del self._incidents[incident_id]
            return True

    # ─── stat windows ───

    async def get_window(self, service_id: str) -> list[StatEntry]:
        async with self._lock:
            window = self._windows.get(service_id)
            return copy.deepcopy(window.stats) if window else []

    async def save_window(self, service_id: str, stats: list[StatEntry], updated_at: str) -> StatWindow:
        oldest, newest = window_bounds(stats)
        window = StatWindow(
            service_id=service_id,
            stats=copy.deepcopy(stats),
            oldest_timestamp=oldest,
            newest_timestamp=newest,
            updated_at=updated_at,
        )
        async with self._lock:
            self._windows[service_id] = window
        return copy.deepcopy(window)

    async def list_windows(self) -> list[StatWindow]:
        async with self._lock:
            return [copy.deepcopy(w) for w in self._windows.values()]

    async def last_updated(self) -> str | None:
        async with self._lock:
            stamps = [w.newest_timestamp for w in self._windows.values() if w.newest_timestamp]
        return max(stamps) if stamps else None

    # ─── incidents ───

    def _find_open(self, service_id: str) -> Incident | None:
        for incident in self._incidents.values():
            if incident.service_id == service_id and incident.is_open:
                return incident
        return None

    def _snapshot(self, incident: Incident) -> Incident:
        snap = copy.deepcopy(incident)
        service = self._services.get(incident.service_id)
        snap.service_name = service.name if service else None
        return snap

    async def get_incident(self, incident_id: str) -> Incident | None:
        async with self._lock:
            incident = self._incidents.get(incident_id)
            return self._snapshot(incident) if incident else None

    async def get_open_incident(self, service_id: str) -> Incident | None:
        async with self._lock:
            incident = self._find_open(service_id)
            return self._snapshot(incident) if incident else None

    async def open_incident(self, incident: Incident) -> Incident | None:
        """Insert *incident* unless the service already has an open one."""
        async with self._lock:
            if self._find_open(incident.service_id) is not None:
                return None
            self._incidents[incident.id] = copy.deepcopy(incident)
            return self._snapshot(incident)

    def _append_update(self, incident: Incident, message: str, status: IncidentStatus, created_at: str) -> IncidentUpdate:
        update = IncidentUpdate(
            id=new_id(),
            incident_id=incident.id,
            message=message,
            status=status,
            created_at=created_at,
        )
        incident.updates.append(update)
        return update

    async def resolve_incident(self, incident_id: str, resolved_at: str, message: str) -> Incident | None:
        """Resolve an open incident. Returns None if it is missing or already resolved."""
        async with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None or not incident.is_open:
                return None
            incident.status = IncidentStatus.RESOLVED
            incident.resolved_at = resolved_at
            self._append_update(incident, message, IncidentStatus.RESOLVED, resolved_at)
            return self._snapshot(incident)

    async def reopen_incident(self, incident_id: str, message: str, reopened_at: str) -> Incident | None:
        async with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                return None
            other = self._find_open(incident.service_id)
            if other is not None and other.id != incident.id:
                raise IncidentConflictError(incident.service_id, other.id)
            incident.status = IncidentStatus.INVESTIGATING
            incident.resolved_at = None
            self._append_update(incident, message, IncidentStatus.INVESTIGATING, reopened_at)
            return self._snapshot(incident)

    async def update_incident(self, incident_id: str, **fields: Any) -> Incident | None:
        check_fields(fields, INCIDENT_FIELDS)
        async with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                return None
            for key, value in fields.items():
                setattr(incident, key, value)
            return self._snapshot(incident)

    async def add_incident_update(
        self, incident_id: str, message: str, status: IncidentStatus, created_at: str
    ) -> IncidentUpdate | None:
        async with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                return None
            return copy.deepcopy(self._append_update(incident, message, status, created_at))

    async def delete_incident(self, incident_id: str) -> bool:
        async with self._lock:
            return self._incidents.pop(incident_id, None) is not None

    async def list_incidents(self, state: IncidentFilter = None, limit: int | None = None) -> list[Incident]:
        async with self._lock:
            incidents = [self._snapshot(i) for i in self._incidents.values()]
        if state == "active":
            incidents = [i for i in incidents if i.is_open]
        elif state == "resolved":
            incidents = [i for i in incidents if not i.is_open]
        incidents.sort(key=lambda i: i.started_at, reverse=True)
        return incidents[:limit] if limit is not None else incidents
