"""Tests for both InMemoryStore and SqliteStore backends."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import NOW, make_entry

from statusboard.config.models import StatusboardConfig, StoreConfig
from statusboard.errors import IncidentConflictError
from statusboard.monitor.models import (
    Incident,
    IncidentImpact,
    IncidentStatus,
    Service,
    ServiceStatus,
    to_iso,
)
from statusboard.store import InMemoryStore, SqliteStore, StatusStore, create_store


def _service(service_id: str, name: str, pinned: bool = False) -> Service:
    return Service(id=service_id, name=name, domain=f"https://{service_id}.test", is_pinned=pinned)


def _incident(incident_id: str, service_id: str = "api", started: int = 0) -> Incident:
    return Incident(
        id=incident_id,
        service_id=service_id,
        title=f"{service_id} is offline",
        description="",
        status=IncidentStatus.INVESTIGATING,
        impact=IncidentImpact.MAJOR,
        started_at=to_iso(NOW + timedelta(minutes=started)),
    )


class TestServices:
    @pytest.mark.asyncio
    async def test_implements_protocol(self, store):
        assert isinstance(store, StatusStore)

    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        await store.create_service(_service("api", "API"))
        service = await store.get_service("api")
        assert service.name == "API"
        assert service.status is ServiceStatus.OPERATIONAL
        assert service.is_pinned is False

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get_service("nope") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store):
        await store.create_service(_service("api", "API"))
        with pytest.raises(ValueError, match="already exists"):
            await store.create_service(_service("api", "API again"))

    @pytest.mark.asyncio
    async def test_list_pinned_first_then_name(self, store):
        await store.create_service(_service("c", "Charlie"))
        await store.create_service(_service("a", "Alpha"))
        await store.create_service(_service("z", "Zulu", pinned=True))
        names = [s.name for s in await store.list_services()]
        assert names == ["Zulu", "Alpha", "Charlie"]

    @pytest.mark.asyncio
    async def test_update(self, store):
        await store.create_service(_service("api", "API"))
        updated = await store.update_service("api", status=ServiceStatus.DEGRADED, ping_ms=431, is_pinned=True)
        assert updated.status is ServiceStatus.DEGRADED
        assert updated.ping_ms == 431
        assert updated.is_pinned is True

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        assert await store.update_service("nope", ping_ms=1) is None

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, store):
        await store.create_service(_service("api", "API"))
        with pytest.raises(ValueError, match="Unknown field"):
            await store.update_service("api", created_at="yesterday")

    @pytest.mark.asyncio
    async def test_delete_cascades(self, store):
        await store.create_service(_service("api", "API"))
        await store.save_window("api", [make_entry(NOW)], updated_at=to_iso(NOW))
        await store.open_incident(_incident("i1"))

        assert await store.delete_service("api") is True
        assert await store.get_service("api") is None
        assert await store.get_window("api") == []
        assert await store.get_incident("i1") is None
        assert await store.delete_service("api") is False


class TestWindows:
    @pytest.mark.asyncio
    async def test_empty_window(self, store):
        assert await store.get_window("api") == []
        assert await store.last_updated() is None

    @pytest.mark.asyncio
    async def test_save_and_get(self, store):
        await store.create_service(_service("api", "API"))
        stats = [make_entry(NOW - timedelta(minutes=1)), make_entry(NOW, ServiceStatus.OFFLINE, ping=8000)]
        window = await store.save_window("api", stats, updated_at=to_iso(NOW))
        assert window.oldest_timestamp == stats[0].timestamp
        assert window.newest_timestamp == stats[1].timestamp

        loaded = await store.get_window("api")
        assert loaded == stats

    @pytest.mark.asyncio
    async def test_save_replaces(self, store):
        await store.create_service(_service("api", "API"))
        await store.save_window("api", [make_entry(NOW)], updated_at=to_iso(NOW))
        await store.save_window("api", [], updated_at=to_iso(NOW))
        assert await store.get_window("api") == []

    @pytest.mark.asyncio
    async def test_last_updated_is_newest_across_services(self, store):
        await store.create_service(_service("a", "A"))
        await store.create_service(_service("b", "B"))
        newest = make_entry(NOW + timedelta(minutes=5))
        await store.save_window("a", [make_entry(NOW)], updated_at=to_iso(NOW))
        await store.save_window("b", [newest], updated_at=to_iso(NOW))
        assert await store.last_updated() == newest.timestamp
        assert len(await store.list_windows()) == 2


class TestIncidents:
    @pytest.mark.asyncio
    async def test_open_and_fetch(self, store):
        await store.create_service(_service("api", "API"))
        incident = await store.open_incident(_incident("i1"))
        assert incident.is_open
        assert incident.service_name == "API"
        assert (await store.get_open_incident("api")).id == "i1"

    @pytest.mark.asyncio
    async def test_at_most_one_open_per_service(self, store):
        await store.create_service(_service("api", "API"))
        assert await store.open_incident(_incident("i1")) is not None
        assert await store.open_incident(_incident("i2")) is None
        assert [i.id for i in await store.list_incidents()] == ["i1"]

    @pytest.mark.asyncio
    async def test_resolve_then_open_again(self, store):
        await store.create_service(_service("api", "API"))
        await store.open_incident(_incident("i1"))
        resolved = await store.resolve_incident("i1", to_iso(NOW), "Service has been restored to operational status")
        assert resolved.status is IncidentStatus.RESOLVED
        assert resolved.resolved_at == to_iso(NOW)
        assert resolved.updates[0].status is IncidentStatus.RESOLVED
        assert await store.get_open_incident("api") is None
        assert await store.open_incident(_incident("i2", started=10)) is not None

    @pytest.mark.asyncio
    async def test_resolve_missing(self, store):
        assert await store.resolve_incident("nope", to_iso(NOW), "x") is None

    @pytest.mark.asyncio
    async def test_resolve_twice_keeps_first_resolution(self, store):
        await store.create_service(_service("api", "API"))
        await store.open_incident(_incident("i1"))
        first = to_iso(NOW + timedelta(minutes=5))
        assert await store.resolve_incident("i1", first, "restored") is not None
        assert await store.resolve_incident("i1", to_iso(NOW + timedelta(hours=1)), "restored") is None
        incident = await store.get_incident("i1")
        assert incident.resolved_at == first
        assert [u.message for u in incident.updates] == ["restored"]

    @pytest.mark.asyncio
    async def test_reopen_conflict(self, store):
        await store.create_service(_service("api", "API"))
        await store.open_incident(_incident("i1"))
        await store.resolve_incident("i1", to_iso(NOW), "fixed")
        await store.open_incident(_incident("i2", started=10))

        with pytest.raises(IncidentConflictError) as exc_info:
            await store.reopen_incident("i1", "again", to_iso(NOW))
        assert exc_info.value.open_incident_id == "i2"

    @pytest.mark.asyncio
    async def test_reopen(self, store):
        await store.create_service(_service("api", "API"))
        await store.open_incident(_incident("i1"))
        await store.resolve_incident("i1", to_iso(NOW), "fixed")
        reopened = await store.reopen_incident("i1", "again", to_iso(NOW + timedelta(minutes=1)))
        assert reopened.is_open
        assert reopened.status is IncidentStatus.INVESTIGATING
        assert [u.message for u in reopened.updates] == ["fixed", "again"]

    @pytest.mark.asyncio
    async def test_update_fields(self, store):
        await store.create_service(_service("api", "API"))
        await store.open_incident(_incident("i1"))
        updated = await store.update_incident("i1", title="API outage", impact=IncidentImpact.CRITICAL)
        assert updated.title == "API outage"
        assert updated.impact is IncidentImpact.CRITICAL

    @pytest.mark.asyncio
    async def test_add_update(self, store):
        await store.create_service(_service("api", "API"))
        await store.open_incident(_incident("i1"))
        update = await store.add_incident_update("i1", "Root cause found", IncidentStatus.IDENTIFIED, to_iso(NOW))
        assert update.incident_id == "i1"
        incident = await store.get_incident("i1")
        assert [u.message for u in incident.updates] == ["Root cause found"]
        assert await store.add_incident_update("nope", "x", IncidentStatus.IDENTIFIED, to_iso(NOW)) is None

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.create_service(_service("api", "API"))
        await store.open_incident(_incident("i1"))
        assert await store.delete_incident("i1") is True
        assert await store.delete_incident("i1") is False

    @pytest.mark.asyncio
    async def test_list_filters_and_order(self, store):
        await store.create_service(_service("api", "API"))
        await store.create_service(_service("web", "Web"))
        await store.open_incident(_incident("old", "api", started=0))
        await store.resolve_incident("old", to_iso(NOW + timedelta(minutes=5)), "fixed")
        await store.open_incident(_incident("new", "api", started=10))
        await store.open_incident(_incident("webi", "web", started=20))

        assert [i.id for i in await store.list_incidents()] == ["webi", "new", "old"]
        assert [i.id for i in await store.list_incidents("active")] == ["webi", "new"]
        assert [i.id for i in await store.list_incidents("resolved")] == ["old"]
        assert [i.id for i in await store.list_incidents(limit=1)] == ["webi"]


class TestCreateStore:
    def test_memory_backend(self):
        assert isinstance(create_store(StatusboardConfig(store=StoreConfig(backend="memory"))), InMemoryStore)

    def test_sqlite_backend(self, tmp_path):
        config = StatusboardConfig(store=StoreConfig(db_path=str(tmp_path / "x.db")))
        assert isinstance(create_store(config), SqliteStore)
