"""Service listing and admin CRUD endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from statusboard import admin
from statusboard.api.auth import require_api_key
from statusboard.api.schemas import ServiceCreate, ServicePatch
from statusboard.monitor.models import utc_now
from statusboard.monitor.window import TIME_RANGES, aggregate_by_period, calculate_metrics, stats_for_range

router = APIRouter(tags=["services"])

NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


@router.get("/services")
async def list_services(request: Request) -> list[dict[str, Any]]:
    """Pinned services first, then by name."""
    services = await request.app.state.store.list_services()
    return [s.to_dict() for s in services]


@router.post("/services", dependencies=[Depends(require_api_key)], status_code=201)
async def create_service(request: Request, body: ServiceCreate) -> dict[str, Any]:
    service = await admin.create_service(
        request.app.state.store,
        name=body.name,
        domain=body.domain,
        description=body.description,
        is_pinned=body.is_pinned,
    )
    return service.to_dict()


@router.patch("/services/{service_id}", dependencies=[Depends(require_api_key)])
async def patch_service(request: Request, service_id: str, body: ServicePatch) -> dict[str, Any]:
    service = await admin.update_service(request.app.state.store, service_id, **body.changes())
    return service.to_dict()


@router.post("/services/{service_id}/pin", dependencies=[Depends(require_api_key)])
async def toggle_pin(request: Request, service_id: str) -> dict[str, Any]:
    service = await admin.toggle_pin(request.app.state.store, service_id)
    return service.to_dict()


@router.delete("/services/{service_id}", dependencies=[Depends(require_api_key)])
async def delete_service(request: Request, service_id: str) -> dict[str, bool]:
    await admin.delete_service(request.app.state.store, service_id)
    return {"success": True}


@router.get("/services/{service_id}/bars")
async def service_bars(
    request: Request, service_id: str, time_range: str = Query("24h", alias="range")
) -> dict[str, Any]:
    """Bucketed bars and summary metrics for one display range."""
    range_ms = TIME_RANGES.get(time_range)
    if range_ms is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown range {time_range!r}; expected one of {', '.join(TIME_RANGES)}",
        )
    store = request.app.state.store
    if await store.get_service(service_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown service: {service_id}")
    now = utc_now()
    in_range = stats_for_range(await store.get_window(service_id), range_ms, now)
    return {
        "service_id": service_id,
        "range": time_range,
        "bars": [b.to_dict() for b in aggregate_by_period(in_range, range_ms, now)],
        "metrics": calculate_metrics(in_range).to_dict(),
    }
