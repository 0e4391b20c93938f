"""SQLite-backed store."""

from __future__ import annotations

import json
import sqlite3
from typing import Any

import aiosqlite

from statusboard.errors import IncidentConflictError
from statusboard.monitor.models import (
    Incident,
    IncidentImpact,
    IncidentStatus,
    IncidentUpdate,
    Service,
    ServiceStatus,
    StatEntry,
    StatWindow,
    to_iso,
    utc_now,
)
from statusboard.store.base import (
    INCIDENT_FIELDS,
    SERVICE_FIELDS,
    IncidentFilter,
    check_fields,
    new_id,
    window_bounds,
)

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS services (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    domain TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'operational',
    is_pinned INTEGER NOT NULL DEFAULT 0,
    ping_ms INTEGER NOT NULL DEFAULT 0,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS service_stats (
    service_id TEXT PRIMARY KEY REFERENCES services(id) ON DELETE CASCADE,
    stats TEXT NOT NULL DEFAULT '[]',
    oldest_timestamp TEXT,
    newest_timestamp TEXT,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS incidents (
    id TEXT PRIMARY KEY,
    service_id TEXT NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL,
    impact TEXT NOT NULL,
    started_at TEXT NOT NULL,
    resolved_at TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS incidents_one_open_per_service
    ON incidents(service_id) WHERE resolved_at IS NULL;

CREATE TABLE IF NOT EXISTS incident_updates (
    id TEXT PRIMARY KEY,
    incident_id TEXT NOT NULL REFERENCES incidents(id) ON DELETE CASCADE,
    message TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""

_SERVICE_COLUMNS = "id, name, domain, status, is_pinned, ping_ms, description, created_at, updated_at"
_INCIDENT_SELECT = (
    "SELECT i.id, i.service_id, i.title, i.description, i.status, i.impact,"
    " i.started_at, i.resolved_at, s.name"
    " FROM incidents i LEFT JOIN services s ON s.id = i.service_id"
)


def _row_to_service(r: Any) -> Service:
    return Service(
        id=str(r[0]),
        name=str(r[1]),
        domain=str(r[2]),
        status=ServiceStatus(r[3]),
        is_pinned=bool(r[4]),
        ping_ms=int(r[5]),
        description=str(r[6]) if r[6] is not None else None,
        created_at=str(r[7]),
        updated_at=str(r[8]),
    )


def _encode(value: Any) -> Any:
    if isinstance(value, (ServiceStatus, IncidentStatus, IncidentImpact)):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


class SqliteStore:
    """Store backed by a SQLite file. A partial unique index keeps one open incident per service."""

    def __init__(self, db_path: str = "statusboard.db") -> None:
        self._db_path = db_path
        self._initialized = False

    async def _init_connection(self, db: aiosqlite.Connection) -> None:
        """Enable foreign keys (must run per-connection) and create tables on first use."""
        await db.execute("PRAGMA foreign_keys = ON")
        if not self._initialized:
            await db.executescript(_CREATE_TABLES)
            self._initialized = True

    # ─── services ───

    async def list_services(self) -> list[Service]:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            rows = list(await db.execute_fetchall(
                f"SELECT {_SERVICE_COLUMNS} FROM services ORDER BY is_pinned DESC, name ASC"
            ))
        return [_row_to_service(r) for r in rows]

    async def get_service(self, service_id: str) -> Service | None:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            rows = list(await db.execute_fetchall(
                f"SELECT {_SERVICE_COLUMNS} FROM services WHERE id = ?", (service_id,)
            ))
        return _row_to_service(rows[0]) if rows else None

    async def create_service(self, service: Service) -> Service:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            try:
                await db.execute(
                    f"INSERT INTO services ({_SERVICE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        service.id,
                        service.name,
                        service.domain,
                        service.status.value,
                        int(service.is_pinned),
                        service.ping_ms,
                        service.description,
                        service.created_at,
                        service.updated_at,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Service already exists: {service.id}") from exc
            await db.commit()
        return service

    async def update_service(self, service_id: str, **fields: Any) -> Service | None:
        check_fields(fields, SERVICE_FIELDS)
        fields["updated_at"] = to_iso(utc_now())
        assignments = ", ".join(f"{key} = ?" for key in fields)
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            cursor = await db.execute(
                f"UPDATE services SET {assignments} WHERE id = ?",
                (*[_encode(v) for v in fields.values()], service_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
        return await self.get_service(service_id)

    async def delete_service(self, service_id: str) -> bool:
        """Delete a service; its stat window and incidents cascade."""
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            cursor = await db.execute("DELETE FROM services WHERE id = ?", (service_id,))
            await db.commit()
            return cursor.rowcount > 0

    # ─── stat windows ───

    async def get_window(self, service_id: str) -> list[StatEntry]:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            rows = list(await db.execute_fetchall(
                "SELECT stats FROM service_stats WHERE service_id = ?", (service_id,)
            ))
        if not rows:
            return []
        return [StatEntry.from_dict(item) for item in json.loads(rows[0][0])]

    async def save_window(self, service_id: str, stats: list[StatEntry], updated_at: str) -> StatWindow:
        oldest, newest = window_bounds(stats)
        payload = json.dumps([s.to_dict() for s in stats])
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            await db.execute(
                "INSERT INTO service_stats (service_id, stats, oldest_timestamp, newest_timestamp, updated_at)"
                " VALUES (?, ?, ?, ?, ?)"
                " ON CONFLICT(service_id) DO UPDATE SET stats = excluded.stats,"
                " oldest_timestamp = excluded.oldest_timestamp,"
                " newest_timestamp = excluded.newest_timestamp,"
                " updated_at = excluded.updated_at",
                (service_id, payload, oldest, newest, updated_at),
            )
            await db.commit()
        return StatWindow(
            service_id=service_id,
            stats=list(stats),
            oldest_timestamp=oldest,
            newest_timestamp=newest,
            updated_at=updated_at,
        )

    async def list_windows(self) -> list[StatWindow]:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            rows = list(await db.execute_fetchall(
                "SELECT service_id, stats, oldest_timestamp, newest_timestamp, updated_at FROM service_stats"
            ))
        return [
            StatWindow(
                service_id=str(r[0]),
                stats=[StatEntry.from_dict(item) for item in json.loads(r[1])],
                oldest_timestamp=r[2],
                newest_timestamp=r[3],
                updated_at=r[4],
            )
            for r in rows
        ]

    async def last_updated(self) -> str | None:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            rows = list(await db.execute_fetchall(
                "SELECT newest_timestamp FROM service_stats WHERE newest_timestamp IS NOT NULL"
                " ORDER BY newest_timestamp DESC LIMIT 1"
            ))
        return str(rows[0][0]) if rows else None

    # ─── incidents ───

    async def _load_updates(self, db: aiosqlite.Connection, incident_id: str) -> list[IncidentUpdate]:
        rows = list(await db.execute_fetchall(
            "SELECT id, incident_id, message, status, created_at FROM incident_updates"
            " WHERE incident_id = ? ORDER BY created_at, rowid",
            (incident_id,),
        ))
        return [
            IncidentUpdate(
                id=str(r[0]),
                incident_id=str(r[1]),
                message=str(r[2]),
                status=IncidentStatus(r[3]),
                created_at=str(r[4]),
            )
            for r in rows
        ]

    async def _rows_to_incidents(self, db: aiosqlite.Connection, rows: list[Any]) -> list[Incident]:
        incidents: list[Incident] = []
        for r in rows:
            incidents.append(
                Incident(
                    id=str(r[0]),
                    service_id=str(r[1]),
                    title=str(r[2]),
                    description=str(r[3]),
                    status=IncidentStatus(r[4]),
                    impact=IncidentImpact(r[5]),
                    started_at=str(r[6]),
                    resolved_at=str(r[7]) if r[7] is not None else None,
                    service_name=str(r[8]) if r[8] is not None else None,
                    updates=await self._load_updates(db, str(r[0])),
                )
            )
        return incidents

    async def _fetch_incident(self, db: aiosqlite.Connection, where: str, params: tuple[Any, ...]) -> Incident | None:
        rows = list(await db.execute_fetchall(f"{_INCIDENT_SELECT} WHERE {where}", params))
        incidents = await self._rows_to_incidents(db, rows)
        return incidents[0] if incidents else None

    async def _insert_update(
        self, db: aiosqlite.Connection, incident_id: str, message: str, status: IncidentStatus, created_at: str
    ) -> IncidentUpdate:
        update = IncidentUpdate(
            id=new_id(), incident_id=incident_id, message=message, status=status, created_at=created_at
        )
        await db.execute(
            "INSERT INTO incident_updates (id, incident_id, message, status, created_at) VALUES (?, ?, ?, ?, ?)",
            (update.id, update.incident_id, update.message, update.status.value, update.created_at),
        )
        return update

    async def get_incident(self, incident_id: str) -> Incident | None:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            return await self._fetch_incident(db, "i.id = ?", (incident_id,))

    async def get_open_incident(self, service_id: str) -> Incident | None:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            return await self._fetch_incident(db, "i.service_id = ? AND i.resolved_at IS NULL", (service_id,))

    async def open_incident(self, incident: Incident) -> Incident | None:
        """Insert *incident* unless the service already has an open one (returns None then)."""
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            cursor = await db.execute(
                "INSERT OR IGNORE INTO incidents"
                " (id, service_id, title, description, status, impact, started_at, resolved_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, NULL)",
                (
                    incident.id,
                    incident.service_id,
                    incident.title,
                    incident.description,
                    incident.status.value,
                    incident.impact.value,
                    incident.started_at,
                ),
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
            return await self._fetch_incident(db, "i.id = ?", (incident.id,))

    async def resolve_incident(self, incident_id: str, resolved_at: str, message: str) -> Incident | None:
        """Resolve an open incident. Returns None if it is missing or already resolved."""
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            cursor = await db.execute(
                "UPDATE incidents SET status = ?, resolved_at = ? WHERE id = ? AND resolved_at IS NULL",
                (IncidentStatus.RESOLVED.value, resolved_at, incident_id),
            )
            if cursor.rowcount == 0:
                return None
            await self._insert_update(db, incident_id, message, IncidentStatus.RESOLVED, resolved_at)
            await db.commit()
            return await self._fetch_incident(db, "i.id = ?", (incident_id,))

    async def reopen_incident(self, incident_id: str, message: str, reopened_at: str) -> Incident | None:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            incident = await self._fetch_incident(db, "i.id = ?", (incident_id,))
            if incident is None:
                return None
            other = await self._fetch_incident(
                db, "i.service_id = ? AND i.resolved_at IS NULL AND i.id != ?", (incident.service_id, incident_id)
            )
            if other is not None:
                raise IncidentConflictError(incident.service_id, other.id)
            try:
                await db.execute(
                    "UPDATE incidents SET status = ?, resolved_at = NULL WHERE id = ?",
                    (IncidentStatus.INVESTIGATING.value, incident_id),
                )
            except sqlite3.IntegrityError as exc:
                # Lost a race with a monitor cycle that opened a new incident
                raise IncidentConflictError(incident.service_id, "unknown") from exc
            await self._insert_update(db, incident_id, message, IncidentStatus.INVESTIGATING, reopened_at)
            await db.commit()
            return await self._fetch_incident(db, "i.id = ?", (incident_id,))

    async def update_incident(self, incident_id: str, **fields: Any) -> Incident | None:
        check_fields(fields, INCIDENT_FIELDS)
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            if fields:
                assignments = ", ".join(f"{key} = ?" for key in fields)
                await db.execute(
                    f"UPDATE incidents SET {assignments} WHERE id = ?",
                    (*[_encode(v) for v in fields.values()], incident_id),
                )
                await db.commit()
            return await self._fetch_incident(db, "i.id = ?", (incident_id,))

    async def add_incident_update(
        self, incident_id: str, message: str, status: IncidentStatus, created_at: str
    ) -> IncidentUpdate | None:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            rows = list(await db.execute_fetchall("SELECT 1 FROM incidents WHERE id = ?", (incident_id,)))
            if not rows:
                return None
            update = await self._insert_update(db, incident_id, message, status, created_at)
            await db.commit()
            return update

    async def delete_incident(self, incident_id: str) -> bool:
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            cursor = await db.execute("DELETE FROM incidents WHERE id = ?", (incident_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def list_incidents(self, state: IncidentFilter = None, limit: int | None = None) -> list[Incident]:
        where = ""
        if state == "active":
            where = " WHERE i.resolved_at IS NULL"
        elif state == "resolved":
            where = " WHERE i.resolved_at IS NOT NULL"
        query = f"{_INCIDENT_SELECT}{where} ORDER BY i.started_at DESC"
        params: tuple[Any, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        async with aiosqlite.connect(self._db_path) as db:
            await self._init_connection(db)
            rows = list(await db.execute_fetchall(query, params))
            return await self._rows_to_incidents(db, rows)
