"""Raw stat windows, last-update marker and the recent event feed."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from statusboard.api.routes.services import NO_CACHE
from statusboard.monitor.models import parse_timestamp, to_epoch_ms, to_iso, utc_now

router = APIRouter(tags=["stats"])


@router.get("/stats")
async def get_stats(request: Request, service_id: str | None = None) -> JSONResponse:
    """One service's stat entries, or every stored window when no service is given."""
    store = request.app.state.store
    if service_id:
        stats = await store.get_window(service_id)
        return JSONResponse([s.to_dict() for s in stats], headers=NO_CACHE)
    windows = await store.list_windows()
    return JSONResponse([w.to_dict() for w in windows], headers=NO_CACHE)


@router.get("/last-update")
async def last_update(request: Request) -> dict[str, Any]:
    """Newest recorded sample across all services and when the next check is due (epoch ms)."""
    interval_ms = request.app.state.config.monitor.interval_seconds * 1000
    last = await request.app.state.store.last_updated()
    last_dt = parse_timestamp(last) if last else utc_now()
    return {
        "lastUpdated": last or to_iso(last_dt),
        "nextCheckIn": to_epoch_ms(last_dt) + interval_ms,
    }


@router.get("/events")
async def recent_events(
    request: Request,
    limit: int = 20,
    event_type: str | None = None,
    service_id: str | None = None,
) -> list[dict[str, Any]]:
    event_log = request.app.state.event_log
    events = await event_log.get_recent(limit=limit, event_type=event_type, service_id=service_id)
    return [e.to_dict() for e in events]
