import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import uuid

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.db import create_db_and_tables
from app.repositories.addons import AddOnRepository
from app.repositories.catalog import CatalogRepository
from app.repositories.orders import OrderLifecycleManager
from app.repositories.tables import TableRepository
from app.store.changes import ChangeFeed
from app.store.row_store import RowStore


# ---------------------------------------------------------------------------
# In-memory store: one shared connection so every call sees the same DB
# ---------------------------------------------------------------------------
@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _foreign_keys_on(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def feed():
    feed = ChangeFeed()
    yield feed
    feed.close()


@pytest.fixture
def store(engine, feed):
    return RowStore(engine, feed)


@pytest.fixture
async def restaurant(store):
    return await store.insert_one("restaurants", {
        "id": str(uuid.uuid4()),
        "name": "Chai and Biscuit",
        "user_id": "owner-1",
    })


@pytest.fixture
async def other_restaurant(store):
    return await store.insert_one("restaurants", {
        "id": str(uuid.uuid4()),
        "name": "Somewhere Else",
        "user_id": "owner-2",
    })


@pytest.fixture
def catalog(store):
    return CatalogRepository(store, hydration_concurrency=4)


@pytest.fixture
def addons(store):
    return AddOnRepository(store)


@pytest.fixture
def tables(store):
    return TableRepository(store)


@pytest.fixture
def orders(store):
    return OrderLifecycleManager(store)


class FlakyStore:
    """
    Wraps a RowStore, records every call as ``(method, table)`` and raises
    ``error`` from the first call matching ``fail_on``.
    """

    def __init__(self, store: RowStore, fail_on=None, error=None):
        self._store = store
        self.feed = store.feed
        self.engine = store.engine
        self.calls = []
        self.fail_on = fail_on
        self.error = error

    def __getattr__(self, name):
        target = getattr(self._store, name)
        if not callable(target) or name.startswith("_"):
            return target

        async def call(table_name, *args, **kwargs):
            self.calls.append((name, table_name))
            if self.fail_on == (name, table_name):
                self.fail_on = None
                raise self.error
            return await target(table_name, *args, **kwargs)

        return call


@pytest.fixture
def flaky_store(store):
    def make(fail_on=None, error=None):
        return FlakyStore(store, fail_on, error)
    return make
