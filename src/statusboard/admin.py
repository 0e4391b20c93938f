"""Operator actions on services and incidents.

These bypass the automatic transition rules but still keep at most one open
incident per service.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

from statusboard.config.models import ServiceEntry
from statusboard.errors import IncidentNotFoundError, ServiceNotFoundError
from statusboard.monitor.models import (
    Incident,
    IncidentImpact,
    IncidentStatus,
    IncidentUpdate,
    Service,
    ServiceStatus,
    to_iso,
    utc_now,
)
from statusboard.store.base import StatusStore, new_id

logger = logging.getLogger(__name__)

RESOLVED_BY_ADMIN = "Incident resolved by admin"
REOPENED_BY_ADMIN = "Incident re-opened by admin"


def validate_probe_url(url: str) -> str:
    """Reject URLs the sampler cannot probe. Returns the URL unchanged."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"invalid URL '{url}': expected an absolute http(s) URL")
    return url


# ─── services ───


async def create_service(
    store: StatusStore,
    name: str,
    domain: str,
    description: str | None = None,
    is_pinned: bool = False,
    service_id: str | None = None,
) -> Service:
    service = Service(
        id=service_id or new_id(),
        name=name,
        domain=validate_probe_url(domain),
        description=description,
        is_pinned=is_pinned,
    )
    created = await store.create_service(service)
    logger.info("Service %s (%s) added", created.name, created.id)
    return created


async def update_service(store: StatusStore, service_id: str, **fields: Any) -> Service:
    if "domain" in fields:
        validate_probe_url(fields["domain"])
    if "status" in fields:
        fields["status"] = ServiceStatus(fields["status"])
    service = await store.update_service(service_id, **fields)
    if service is None:
        raise ServiceNotFoundError(service_id)
    return service


async def toggle_pin(store: StatusStore, service_id: str) -> Service:
    service = await store.get_service(service_id)
    if service is None:
        raise ServiceNotFoundError(service_id)
    return await update_service(store, service_id, is_pinned=not service.is_pinned)


async def delete_service(store: StatusStore, service_id: str) -> None:
    """Delete a service together with its stat window and incidents."""
    if not await store.delete_service(service_id):
        raise ServiceNotFoundError(service_id)
    logger.info("Service %s deleted", service_id)


async def sync_services(store: StatusStore, entries: dict[str, ServiceEntry]) -> tuple[list[str], list[str]]:
    """Create or refresh config-declared services keyed by their config key.

    Returns the created and updated ids. Status, ping and stats are untouched.
    """
    created: list[str] = []
    updated: list[str] = []
    for key, entry in entries.items():
        existing = await store.get_service(key)
        if existing is None:
            await create_service(
                store,
                name=entry.name,
                domain=entry.url,
                description=entry.description or None,
                is_pinned=entry.pinned,
                service_id=key,
            )
            created.append(key)
            continue
        changes: dict[str, Any] = {}
        if existing.name != entry.name:
            changes["name"] = entry.name
        if existing.domain != entry.url:
            changes["domain"] = entry.url
        if (existing.description or "") != entry.description:
            changes["description"] = entry.description or None
        if existing.is_pinned != entry.pinned:
            changes["is_pinned"] = entry.pinned
        if changes:
            await update_service(store, key, **changes)
            updated.append(key)
    return created, updated


# ─── incidents ───


async def _require_incident(store: StatusStore, incident_id: str) -> Incident:
    incident = await store.get_incident(incident_id)
    if incident is None:
        raise IncidentNotFoundError(incident_id)
    return incident


async def resolve_incident(store: StatusStore, incident_id: str, message: str = RESOLVED_BY_ADMIN) -> Incident:
    """Resolve an incident by hand. Resolving a resolved incident is a no-op."""
    incident = await _require_incident(store, incident_id)
    if not incident.is_open:
        return incident
    resolved = await store.resolve_incident(incident_id, to_iso(utc_now()), message)
    if resolved is None:
        # Resolved by a monitor cycle in the meantime
        return await _require_incident(store, incident_id)
    logger.info("Incident %s resolved by admin", incident_id)
    return resolved


async def reopen_incident(store: StatusStore, incident_id: str, message: str = REOPENED_BY_ADMIN) -> Incident:
    """Reopen a resolved incident.

    Raises IncidentConflictError if the service already has another open incident.
    """
    incident = await _require_incident(store, incident_id)
    if incident.is_open:
        return incident
    reopened = await store.reopen_incident(incident_id, message, to_iso(utc_now()))
    if reopened is None:
        raise IncidentNotFoundError(incident_id)
    logger.info("Incident %s re-opened by admin", incident_id)
    return reopened


async def edit_incident(store: StatusStore, incident_id: str, **fields: Any) -> Incident:
    """Change title, description, status or impact. Use resolve/reopen to open or close."""
    if "status" in fields:
        status = IncidentStatus(fields["status"])
        if status is IncidentStatus.RESOLVED:
            raise ValueError("use resolve to close an incident")
        fields["status"] = status
    if "impact" in fields:
        fields["impact"] = IncidentImpact(fields["impact"])
    incident = await store.update_incident(incident_id, **fields)
    if incident is None:
        raise IncidentNotFoundError(incident_id)
    return incident


async def post_update(
    store: StatusStore, incident_id: str, message: str, status: IncidentStatus | str
) -> IncidentUpdate:
    update = await store.add_incident_update(incident_id, message, IncidentStatus(status), to_iso(utc_now()))
    if update is None:
        raise IncidentNotFoundError(incident_id)
    return update


async def delete_incident(store: StatusStore, incident_id: str) -> None:
    if not await store.delete_incident(incident_id):
        raise IncidentNotFoundError(incident_id)
    logger.info("Incident %s deleted", incident_id)
