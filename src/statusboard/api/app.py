"""FastAPI application factory for statusboard."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from statusboard import __version__
from statusboard.api.routes import incidents, monitor, services, stats
from statusboard.config.loader import load_config_or_default
from statusboard.config.models import StatusboardConfig
from statusboard.errors import (
    IncidentConflictError,
    IncidentNotFoundError,
    ServiceNotFoundError,
    StatusboardError,
)
from statusboard.events.emitter import EventEmitter
from statusboard.events.log import EventLog
from statusboard.events.webhook import WebhookListener
from statusboard.monitor.cycle import MonitorCycle
from statusboard.store import create_store
from statusboard.store.base import StatusStore

logger = logging.getLogger(__name__)


async def _domain_error(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, (ServiceNotFoundError, IncidentNotFoundError)):
        status = 404
    elif isinstance(exc, IncidentConflictError):
        status = 409
    else:
        status = 500
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def create_app(
    config: StatusboardConfig | None = None,
    store: StatusStore | None = None,
) -> FastAPI:
    config = config or load_config_or_default()
    app = FastAPI(title=config.site.title, version=__version__, description="Service status and incidents")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StatusboardError, _domain_error)

    if not config.auth.cron_secret:
        logger.warning("auth.cron_secret is empty; /monitor-cycle accepts unauthenticated calls")

    event_log = EventLog(config.event_log_size)
    emitter = EventEmitter()
    emitter.add_listener(event_log)
    if config.webhooks:
        emitter.add_listener(WebhookListener(config.webhooks))

    store = store or create_store(config)
    app.state.config = config
    app.state.store = store
    app.state.event_log = event_log
    app.state.emitter = emitter
    app.state.monitor = MonitorCycle(store, config.monitor, emitter=emitter)

    @app.get("/health", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(monitor.router)
    app.include_router(services.router, prefix="/api")
    app.include_router(incidents.router, prefix="/api")
    app.include_router(stats.router, prefix="/api")

    return app


def app_factory() -> FastAPI:
    """Entry point for ``uvicorn --factory``."""
    return create_app()
