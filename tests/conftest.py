"""
pytest configuration and shared fixtures for the Zone Map tests.

Tests never need a live MongoDB or a running API:
  1. connect_to_mongo / close_mongo_connection are patched to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. Route tests override get_db with FakeDB, an in-memory replica of the
     subset of the Motor API the routes use, and get_change_hub with a
     fresh ChangeHub they can subscribe to.
  3. View tests get FakeTables / FakeChanges, in-memory stand-ins for the
     TableService / ChangeService collaborators.
"""

import inspect
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ADMIN_PASSWORD", "MEOWL")

from zonemap.client.interfaces import ChangeServiceError, TableServiceError  # noqa: E402
from zonemap.models.changes import ChangeNotification  # noqa: E402


# ── MongoDB lifecycle ──────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def mock_db():
    """
    Patch the MongoDB lifecycle for every test and mark the db disconnected.

    Tests that need a database override get_db with fake_db.
    """
    with (
        patch("zonemap.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("zonemap.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import zonemap.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from zonemap.core.rate_limit import limiter

    try:
        limiter._limiter.storage.reset()
    except Exception:
        pass  # Some storage backends don't support reset


# ── In-memory MongoDB emulator ─────────────────────────────────────────────────

def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1):
        self._docs = sorted(self._docs, key=lambda d: d[key], reverse=direction < 0)
        return self

    async def __aiter__(self):
        for doc in self._docs:
            yield dict(doc)


class FakeCollection:
    """Minimal async-compatible replica of a Motor collection."""

    def __init__(self):
        self.docs: dict[Any, dict] = {}

    def find(self, query: Optional[dict] = None):
        return FakeCursor([d for d in self.docs.values() if _matches(d, query or {})])

    async def find_one(self, query: dict):
        for doc in self.docs.values():
            if _matches(doc, query):
                return dict(doc)
        return None

    async def insert_one(self, doc: dict):
        self.docs[doc["_id"]] = dict(doc)
        result = MagicMock()
        result.inserted_id = doc["_id"]
        return result

    async def update_one(self, query: dict, update: dict):
        result = MagicMock()
        result.modified_count = 0
        for doc in self.docs.values():
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                result.modified_count = 1
                break
        return result

    async def delete_one(self, query: dict):
        result = MagicMock()
        result.deleted_count = 0
        for key, doc in list(self.docs.items()):
            if _matches(doc, query):
                del self.docs[key]
                result.deleted_count = 1
                break
        return result

    async def find_one_and_update(self, query: dict, update: dict, upsert: bool = False, return_document=None):
        doc = next((d for d in self.docs.values() if _matches(d, query)), None)
        if doc is None:
            if not upsert:
                return None
            doc = dict(query)
            self.docs[doc["_id"]] = doc
        for key, amount in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + amount
        return dict(doc)


class FakeDB:
    def __init__(self):
        self._cols: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._cols:
            self._cols[name] = FakeCollection()
        return self._cols[name]


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
def seeded_db(fake_db):
    """Two factions, three areas (one without a faction), two events."""
    factions = fake_db["factions"].docs
    factions[1] = {"_id": 1, "slug": "dever", "name": "Dever", "reputation": 45}
    factions[2] = {"_id": 2, "slug": "liberdade", "name": "Liberdade", "reputation": 80}

    areas = fake_db["areas"].docs
    areas[1] = {
        "_id": 1, "slug": "duga", "name": "Radar Duga", "description": "Antena ||sinal 9||",
        "danger": "ALTO", "faction_id": 1, "top_pos": "20%", "left_pos": "30%",
        "width_css": "12%", "z_index": 3, "ping_top": "22%", "ping_left": "33%",
    }
    areas[2] = {
        "_id": 2, "slug": "pripyat", "name": "Pripyat", "description": "Cidade fantasma",
        "danger": "EXTREMO", "faction_id": 2, "top_pos": "50%", "left_pos": "60%",
    }
    areas[3] = {
        "_id": 3, "slug": "cordao", "name": "Cordão", "description": "", "danger": "BAIXO",
        "faction_id": None, "top_pos": "80%", "left_pos": "10%",
    }

    now = datetime.now(tz=timezone.utc)
    events = fake_db["events"].docs
    events[1] = {
        "_id": 1, "created_at": now - timedelta(hours=2), "active": True, "type": "info",
        "title": "INFO", "color": "#33ff33", "message": "Rede ativa",
        "top_pos": None, "left_pos": None, "location_name": None,
    }
    events[2] = {
        "_id": 2, "created_at": now - timedelta(hours=1), "active": True, "type": "info",
        "title": "ALERTA", "color": "#ff3333", "message": "Emissão próxima",
        "top_pos": "22%", "left_pos": "33%", "location_name": "Radar Duga",
    }

    counters = fake_db["counters"].docs
    counters["factions"] = {"_id": "factions", "seq": 2}
    counters["areas"] = {"_id": "areas", "seq": 3}
    counters["events"] = {"_id": "events", "seq": 2}
    return fake_db


@pytest.fixture()
def hub():
    from zonemap.core.changes import ChangeHub

    return ChangeHub(queue_size=16)


@pytest.fixture()
async def api_client(seeded_db, hub):
    """
    HTTPX async client wired to the FastAPI app with FakeDB and a private hub.

    Usage:
        async def test_something(api_client):
            response = await api_client.get("/api/v1/events")
    """
    from zonemap.core.changes import get_change_hub
    from zonemap.core.database import get_db
    from zonemap.main import app

    app.dependency_overrides[get_db] = lambda: seeded_db
    app.dependency_overrides[get_change_hub] = lambda: hub
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
async def client():
    """Plain client against the app with the database disconnected."""
    from zonemap.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ── View collaborators ─────────────────────────────────────────────────────────

class FakeTables:
    """
    In-memory TableService.

    `fail_reads` / `fail_writes` hold table names whose calls raise
    TableServiceError. `calls` records every call as (method, table, ...).
    """

    def __init__(self, rows: Optional[dict[str, list[dict]]] = None):
        self.rows: dict[str, list[dict]] = {t: [dict(r) for r in rs] for t, rs in (rows or {}).items()}
        self.fail_reads: set[str] = set()
        self.fail_writes: set[str] = set()
        self.calls: list[tuple] = []
        self._next_id: dict[str, int] = {
            t: max((r["id"] for r in rs), default=0) for t, rs in self.rows.items()
        }

    async def select(self, table, *, order_by=None, descending=False, expand=None):
        self.calls.append(("select", table))
        if table in self.fail_reads:
            raise TableServiceError(f"{table} unavailable", 503)
        rows = [dict(r) for r in self.rows.get(table, [])]
        if order_by:
            rows.sort(key=lambda r: r[order_by], reverse=descending)
        if expand == "faction":
            factions = {f["id"]: dict(f) for f in self.rows.get("factions", [])}
            for row in rows:
                row["faction"] = factions.get(row.get("faction_id"))
        return rows

    async def insert(self, table, record):
        self.calls.append(("insert", table, dict(record)))
        if table in self.fail_writes:
            raise TableServiceError(f"{table} write failed", 500)
        self._next_id[table] = self._next_id.get(table, 0) + 1
        row = {"id": self._next_id[table], **record}
        if table == "events":
            row.setdefault("created_at", datetime.now(tz=timezone.utc).isoformat())
        self.rows.setdefault(table, []).append(row)
        return dict(row)

    async def update(self, table, patch, match):
        self.calls.append(("update", table, dict(patch), dict(match)))
        if table in self.fail_writes:
            raise TableServiceError(f"{table} write failed", 500)
        (key, value), = match.items()
        for row in self.rows.get(table, []):
            if row.get(key) == value:
                row.update(patch)
                return dict(row)
        raise TableServiceError(f"{table} row not found", 404)

    async def delete(self, table, match):
        self.calls.append(("delete", table, dict(match)))
        if table in self.fail_writes:
            raise TableServiceError(f"{table} write failed", 500)
        (key, value), = match.items()
        self.rows[table] = [r for r in self.rows.get(table, []) if r.get(key) != value]

    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0] != "select"]


class FakeChanges:
    """In-memory ChangeService; push() delivers to every live subscriber."""

    def __init__(self):
        self.subscribers: dict[int, Any] = {}
        self.fail_subscribe = False
        self._ids = 0

    async def subscribe(self, callback, tables=None):
        if self.fail_subscribe:
            raise ChangeServiceError("feed unavailable")
        self._ids += 1
        self.subscribers[self._ids] = callback
        return self._ids

    async def unsubscribe(self, handle):
        self.subscribers.pop(handle, None)

    async def push(self, table: str, change_kind: str, old_record=None, new_record=None):
        notification = ChangeNotification(
            table=table, change_kind=change_kind, old_record=old_record, new_record=new_record,
        )
        for callback in list(self.subscribers.values()):
            result = callback(notification)
            if inspect.isawaitable(result):
                await result


def _view_rows() -> dict[str, list[dict]]:
    now = datetime.now(tz=timezone.utc)
    return {
        "factions": [
            {"id": 1, "slug": "dever", "name": "Dever", "reputation": 45},
            {"id": 2, "slug": "liberdade", "name": "Liberdade", "reputation": 80},
        ],
        "areas": [
            {"id": 1, "slug": "duga", "name": "Radar Duga", "description": "Antena ||sinal 9||",
             "danger": "ALTO", "faction_id": 1, "top_pos": "20%", "left_pos": "30%",
             "ping_top": "22%", "ping_left": "33%"},
            {"id": 2, "slug": "cordao", "name": "Cordão", "description": "Posto militar",
             "danger": "BAIXO", "faction_id": None, "top_pos": "80%", "left_pos": "10%"},
        ],
        "events": [
            {"id": 1, "created_at": (now - timedelta(hours=2)).isoformat(), "title": "INFO",
             "color": "#33ff33", "message": "Rede ativa"},
            {"id": 2, "created_at": (now - timedelta(hours=1)).isoformat(), "title": "ALERTA",
             "color": "#ff3333", "message": "Emissão", "top_pos": "22%", "left_pos": "33%",
             "location_name": "Radar Duga"},
        ],
    }


@pytest.fixture()
def fake_tables():
    return FakeTables(_view_rows())


@pytest.fixture()
def fake_changes():
    return FakeChanges()
