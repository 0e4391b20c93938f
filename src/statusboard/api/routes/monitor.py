"""Scheduler entry point: run one monitoring cycle."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from statusboard.api.auth import require_cron_secret
from statusboard.errors import MonitorCycleError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["monitor"])


@router.post("/monitor-cycle", dependencies=[Depends(require_cron_secret)], response_model=None)
async def monitor_cycle(request: Request) -> dict[str, Any] | JSONResponse:
    cycle = request.app.state.monitor
    try:
        result = await cycle.run()
    except MonitorCycleError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("Monitoring error")
        return JSONResponse(status_code=500, content={"error": "Monitoring failed", "details": str(exc)})
    return result.to_dict()
