"""Domain errors raised by the store, admin actions and the monitor cycle."""

from __future__ import annotations


class StatusboardError(Exception):
    """Base class for statusboard errors."""


class ServiceNotFoundError(StatusboardError):
    def __init__(self, service_id: str) -> None:
        super().__init__(f"Unknown service: {service_id}")
        self.service_id = service_id


class IncidentNotFoundError(StatusboardError):
    def __init__(self, incident_id: str) -> None:
        super().__init__(f"Unknown incident: {incident_id}")
        self.incident_id = incident_id


class IncidentConflictError(StatusboardError):
    """Raised when an action would leave a service with two open incidents."""

    def __init__(self, service_id: str, open_incident_id: str) -> None:
        super().__init__(
            f"Service {service_id} already has an open incident ({open_incident_id})"
        )
        self.service_id = service_id
        self.open_incident_id = open_incident_id


class MonitorCycleError(StatusboardError):
    """The cycle could not enumerate services and was aborted."""
