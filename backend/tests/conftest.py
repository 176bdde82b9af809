"""
Shared pytest fixtures.

Every test gets its own SQLite database file, so no Postgres is required.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_amity.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["RETRY_INITIAL_DELAY_SECONDS"] = "0"
os.environ.pop("REDIS_URL", None)
os.environ.pop("NOTIFY_WEBHOOK_URL", None)

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import amity.models  # noqa: F401
from amity.api.deps import get_remote_store, get_storage
from amity.core.database import Base
from amity.core.security import create_access_token
from amity.main import app
from amity.schemas.memory import MemoryCreate
from amity.services.background import drain
from amity.services.boards import BoardRepository
from amity.services.memories import MemoryRepository
from amity.services.retry import RetryExecutor
from amity.store.local import FileLocalStorage, InMemoryLocalStorage
from amity.store.remote import SqlRemoteStore

BASE_DATE = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FlakyStore:
    """Delegates to a real store, raising injected failures first.

    `rules` are callables `(method, table, args) -> exception | None`;
    `queued[method]` holds exceptions raised one per call before delegating.
    """

    def __init__(self, inner):
        self.inner = inner
        self.rules = []
        self.queued = {}
        self.calls = []

    async def _call(self, method, table, *args):
        self.calls.append((method, table))
        for rule in self.rules:
            exc = rule(method, table, args)
            if exc is not None:
                raise exc
        pending = self.queued.get(method)
        if pending:
            raise pending.pop(0)
        return await getattr(self.inner, method)(table, *args)

    async def select(self, table, filters=(), order=(), limit=None):
        return await self._call("select", table, filters, order, limit)

    async def insert(self, table, rows):
        return await self._call("insert", table, rows)

    async def upsert(self, table, rows, conflict):
        return await self._call("upsert", table, rows, conflict)

    async def update(self, table, filters, values):
        return await self._call("update", table, filters, values)

    async def delete(self, table, filters):
        return await self._call("delete", table, filters)

    async def rpc(self, name, params):
        return await self._call("rpc", name, params)


@pytest.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'amity.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def store(engine):
    return SqlRemoteStore(async_sessionmaker(engine, expire_on_commit=False))


@pytest.fixture()
def flaky_store(store):
    return FlakyStore(store)


@pytest.fixture()
def local_storage():
    return InMemoryLocalStorage()


@pytest.fixture()
def memories(store):
    return MemoryRepository(store, retry=RetryExecutor(initial_delay=0), notify=False)


@pytest.fixture()
def boards(store):
    return BoardRepository(store, retry=RetryExecutor(initial_delay=0))


@pytest.fixture()
def make_memory():
    def _make(access_code, days_ago=0, **overrides):
        fields = {
            "access_code": access_code,
            "event_date": BASE_DATE - timedelta(days=days_ago),
            "kind": "photo",
            "primary_media_url": "https://cdn.test/photo.jpg",
        }
        fields.update(overrides)
        return MemoryCreate(**fields)

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user_id):
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
async def client(store, tmp_path):
    storage = FileLocalStorage(tmp_path / "drafts")
    app.dependency_overrides[get_remote_store] = lambda: store
    app.dependency_overrides[get_storage] = lambda: storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await drain()
    app.dependency_overrides.clear()
