"""Monitor cycle: probe every service, roll its stat window, apply incident effects."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from statusboard.config.models import MonitorConfig
from statusboard.errors import MonitorCycleError
from statusboard.events.emitter import EventEmitter, MonitorEvent
from statusboard.monitor.incidents import Effect, OpenIncident, ResolveIncident, transition
from statusboard.monitor.models import Incident, Service, ServiceStatus, to_iso, utc_now
from statusboard.monitor.sampler import probe
from statusboard.monitor.window import update_sliding_window
from statusboard.store.base import StatusStore, new_id

logger = logging.getLogger(__name__)


@dataclass
class ServiceOutcome:
    """What one service's check produced this cycle."""

    service_id: str
    name: str
    previous_status: ServiceStatus
    status: ServiceStatus
    ping_ms: int
    incident: str = "none"  # "none" | "opened" | "resolved"


@dataclass
class CycleResult:
    services_checked: int
    timestamp: str
    outcomes: list[ServiceOutcome] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "servicesChecked": self.services_checked,
            "timestamp": self.timestamp,
        }


class MonitorCycle:
    """Runs one monitoring pass over all stored services.

    Services are isolated from each other: an error while checking one is
    logged and the pass continues. Each service is processed under a
    per-service lock, so overlapping passes in the same process cannot both
    act on the same stored status.
    """

    def __init__(
        self,
        store: StatusStore,
        config: MonitorConfig | None = None,
        emitter: EventEmitter | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._config = config or MonitorConfig()
        self._emitter = emitter
        self._clock = clock
        self._leases: dict[str, asyncio.Lock] = {}

    def _lease(self, service_id: str) -> asyncio.Lock:
        lock = self._leases.get(service_id)
        if lock is None:
            lock = self._leases[service_id] = asyncio.Lock()
        return lock

    async def _emit(self, event_type: str, service_id: str | None, data: dict[str, Any]) -> None:
        if self._emitter is not None:
            await self._emitter.emit(MonitorEvent(
                event_type=event_type,
                timestamp=self._clock(),
                service_id=service_id,
                data=data,
            ))

    async def run(self) -> CycleResult:
        """Check every service once.

        Raises MonitorCycleError when the service list cannot be read; nothing
        is probed in that case.
        """
        try:
            services = await self._store.list_services()
        except Exception as exc:
            logger.exception("Failed to fetch services")
            raise MonitorCycleError("Failed to fetch services") from exc

        logger.info("Starting monitoring for %d services", len(services))
        semaphore = asyncio.Semaphore(self._config.concurrency)

        async def _bounded(service: Service) -> ServiceOutcome | None:
            async with semaphore:
                return await self._check_isolated(service)

        outcomes = await asyncio.gather(*(_bounded(s) for s in services))

        result = CycleResult(services_checked=len(services), timestamp=to_iso(self._clock()))
        for service, outcome in zip(services, outcomes):
            if outcome is None:
                result.failed.append(service.id)
            else:
                result.outcomes.append(outcome)

        await self._emit("cycle.completed", None, {
            "services_checked": result.services_checked,
            "failed": list(result.failed),
        })
        if result.failed:
            logger.warning("Cycle finished with %d failed service(s)", len(result.failed))
        return result

    async def _check_isolated(self, service: Service) -> ServiceOutcome | None:
        try:
            return await self.check_service(service)
        except Exception:
            logger.exception("Error monitoring service %s", service.id)
            return None

    async def check_service(self, service: Service) -> ServiceOutcome | None:
        """Probe, record and transition a single service.

        Returns None when the service disappeared while it was being probed.
        """
        async with self._lease(service.id):
            sample = await probe(service.domain, timeout=self._config.probe_timeout)
            if sample.status is None:
                raise ValueError(f"sampler returned no status for {service.domain}")
            logger.info("%s (%s): %s", service.name, service.domain, sample.status.value)

            # Status as of the previous completed check, read before it is overwritten
            current = await self._store.get_service(service.id)
            if current is None:
                logger.info("Service %s was deleted mid-cycle, skipping", service.id)
                self._leases.pop(service.id, None)
                return None
            last_status = current.status

            history = await self._store.get_window(service.id)
            window = update_sliding_window(
                history, sample, max_age=timedelta(days=self._config.window_days)
            )
            now = self._clock()
            await self._store.save_window(service.id, window, updated_at=to_iso(now))
            logger.debug("Stats saved for %s, %d entries", service.id, len(window))

            await self._store.update_service(service.id, status=sample.status, ping_ms=sample.ping_ms)

            outcome = ServiceOutcome(
                service_id=service.id,
                name=current.name,
                previous_status=last_status,
                status=sample.status,
                ping_ms=sample.ping_ms,
            )
            if last_status is not sample.status:
                await self._emit("service.status_changed", service.id, {
                    "from": last_status.value,
                    "to": sample.status.value,
                    "ping_ms": sample.ping_ms,
                })

            open_incident = await self._store.get_open_incident(service.id)
            effect = transition(service.id, current.name, last_status, sample.status, now, open_incident)
            outcome.incident = await self._apply(effect, current)
            return outcome

    async def _apply(self, effect: Effect, service: Service) -> str:
        if isinstance(effect, OpenIncident):
            incident = await self._store.open_incident(Incident(
                id=new_id(),
                service_id=effect.service_id,
                title=effect.title,
                description=effect.description,
                status=effect.status,
                impact=effect.impact,
                started_at=effect.started_at,
            ))
            if incident is None:
                logger.info("Open incident already exists for %s, not creating another", service.name)
                return "none"
            logger.info("Incident created for %s", service.name)
            await self._emit("incident.opened", service.id, {
                "incident_id": incident.id,
                "title": incident.title,
                "impact": incident.impact.value,
            })
            return "opened"

        if isinstance(effect, ResolveIncident):
            incident = await self._store.resolve_incident(effect.incident_id, effect.resolved_at, effect.message)
            if incident is None:
                logger.info("Incident %s was already resolved or removed", effect.incident_id)
                return "none"
            logger.info("Incident resolved for %s", service.name)
            await self._emit("incident.resolved", service.id, {
                "incident_id": incident.id,
                "title": incident.title,
            })
            return "resolved"

        return "none"

    async def run_forever(self, interval_seconds: float, iterations: int | None = None) -> None:
        """Run a pass every *interval_seconds*; a failed pass is logged and the loop continues."""
        done = 0
        while iterations is None or done < iterations:
            try:
                result = await self.run()
                logger.info("Monitoring run: %d services checked", result.services_checked)
            except MonitorCycleError:
                logger.error("Monitoring run aborted; retrying in %ss", interval_seconds)
            done += 1
            if iterations is None or done < iterations:
                await asyncio.sleep(interval_seconds)
