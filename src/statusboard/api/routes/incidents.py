"""Incident listing and admin lifecycle endpoints."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from statusboard import admin
from statusboard.api.auth import require_api_key
from statusboard.api.schemas import IncidentPatch, IncidentUpdateCreate
from statusboard.api.routes.services import NO_CACHE

router = APIRouter(tags=["incidents"])

RESOLVED_LIST_LIMIT = 50


@router.get("/incidents")
async def list_incidents(
    request: Request,
    state: Literal["active", "resolved"] | None = Query(None, alias="filter"),
) -> JSONResponse:
    """Incidents newest first, each with its service name and ordered updates."""
    limit = RESOLVED_LIST_LIMIT if state == "resolved" else None
    incidents = await request.app.state.store.list_incidents(state, limit=limit)
    return JSONResponse([i.to_dict() for i in incidents], headers=NO_CACHE)


@router.patch("/incidents/{incident_id}", dependencies=[Depends(require_api_key)])
async def patch_incident(request: Request, incident_id: str, body: IncidentPatch) -> dict[str, Any]:
    incident = await admin.edit_incident(request.app.state.store, incident_id, **body.changes())
    return incident.to_dict()


@router.post("/incidents/{incident_id}/resolve", dependencies=[Depends(require_api_key)])
async def resolve_incident(request: Request, incident_id: str) -> dict[str, Any]:
    incident = await admin.resolve_incident(request.app.state.store, incident_id)
    return incident.to_dict()


@router.post("/incidents/{incident_id}/reopen", dependencies=[Depends(require_api_key)])
async def reopen_incident(request: Request, incident_id: str) -> dict[str, Any]:
    incident = await admin.reopen_incident(request.app.state.store, incident_id)
    return incident.to_dict()


@router.post("/incidents/{incident_id}/updates", dependencies=[Depends(require_api_key)], status_code=201)
async def post_incident_update(request: Request, incident_id: str, body: IncidentUpdateCreate) -> dict[str, Any]:
    update = await admin.post_update(request.app.state.store, incident_id, body.message, body.status)
    return update.to_dict()


@router.delete("/incidents/{incident_id}", dependencies=[Depends(require_api_key)])
async def delete_incident(request: Request, incident_id: str) -> dict[str, bool]:
    await admin.delete_incident(request.app.state.store, incident_id)
    return {"success": True}
