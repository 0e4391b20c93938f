"""Request bodies for admin endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, field_validator

from statusboard.admin import validate_probe_url
from statusboard.monitor.models import IncidentImpact, IncidentStatus, ServiceStatus


class ServiceCreate(BaseModel):
    name: str
    domain: str
    description: str | None = None
    is_pinned: bool = False

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, value: str) -> str:
        return validate_probe_url(value)


class ServicePatch(BaseModel):
    name: str | None = None
    domain: str | None = None
    description: str | None = None
    is_pinned: bool | None = None
    status: ServiceStatus | None = None  # manual override, e.g. maintenance

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, value: str | None) -> str | None:
        return validate_probe_url(value) if value is not None else None

    def changes(self) -> dict[str, Any]:
        # Only description may be cleared with an explicit null
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k == "description"}


class IncidentPatch(BaseModel):
    title: str | None = None
    description: str | None = None
    status: IncidentStatus | None = None
    impact: IncidentImpact | None = None

    @field_validator("status")
    @classmethod
    def _not_resolved(cls, value: IncidentStatus | None) -> IncidentStatus | None:
        if value is IncidentStatus.RESOLVED:
            raise ValueError("use the resolve endpoint to close an incident")
        return value

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class IncidentUpdateCreate(BaseModel):
    message: str
    status: IncidentStatus
