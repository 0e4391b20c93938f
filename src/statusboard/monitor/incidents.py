"""Status transition rules that open and auto-resolve incidents."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from statusboard.monitor.models import (
    Incident,
    IncidentImpact,
    IncidentStatus,
    ServiceStatus,
    to_iso,
)

RESTORED_MESSAGE = "Service has been restored to operational status"


@dataclass(frozen=True)
class NoEffect:
    pass


@dataclass(frozen=True)
class OpenIncident:
    service_id: str
    title: str
    description: str
    impact: IncidentImpact
    started_at: str
    status: IncidentStatus = IncidentStatus.INVESTIGATING


@dataclass(frozen=True)
class ResolveIncident:
    incident_id: str
    resolved_at: str
    message: str = RESTORED_MESSAGE
    status: IncidentStatus = IncidentStatus.RESOLVED


Effect = NoEffect | OpenIncident | ResolveIncident

NO_EFFECT = NoEffect()


def transition(
    service_id: str,
    service_name: str,
    last_status: ServiceStatus,
    new_status: ServiceStatus,
    now: datetime,
    open_incident: Incident | None,
) -> Effect:
    """Decide the incident effect of moving from *last_status* to *new_status*.

    *last_status* is the status stored before this cycle wrote its result, and
    *open_incident* is the service's currently unresolved incident, if any.
    Moving between two non-operational statuses leaves the open incident and
    its impact untouched.
    """
    was_up = last_status is ServiceStatus.OPERATIONAL
    is_up = new_status is ServiceStatus.OPERATIONAL

    if was_up and not is_up:
        if open_incident is not None:
            return NO_EFFECT
        return OpenIncident(
            service_id=service_id,
            title=f"{service_name} is {new_status.value}",
            description=f"The service became {new_status.value} at {now.strftime('%Y-%m-%d %H:%M:%S %Z')}",
            impact=IncidentImpact.MAJOR if new_status is ServiceStatus.OFFLINE else IncidentImpact.DEGRADED,
            started_at=to_iso(now),
        )

    if not was_up and is_up:
        if open_incident is None:
            return NO_EFFECT
        return ResolveIncident(incident_id=open_incident.id, resolved_at=to_iso(now))

    return NO_EFFECT
