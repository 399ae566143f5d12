from functools import lru_cache

from fastapi import Depends

from app.db import get_async_engine
from app.repositories.addons import AddOnRepository
from app.repositories.catalog import CatalogRepository
from app.repositories.orders import OrderLifecycleManager
from app.repositories.tables import TableRepository
from app.store.changes import ChangeFeed
from app.store.row_store import RowStore


@lru_cache
def get_store() -> RowStore:
    return RowStore(get_async_engine(), ChangeFeed())


# Repositories are cached per store so per-item locks are shared across requests
@lru_cache
def _catalog(store: RowStore) -> CatalogRepository:
    return CatalogRepository(store)


@lru_cache
def _orders(store: RowStore) -> OrderLifecycleManager:
    return OrderLifecycleManager(store)


def get_catalog(store: RowStore = Depends(get_store)) -> CatalogRepository:
    return _catalog(store)


def get_addons(store: RowStore = Depends(get_store)) -> AddOnRepository:
    return AddOnRepository(store)


def get_tables(store: RowStore = Depends(get_store)) -> TableRepository:
    return TableRepository(store)


def get_orders(store: RowStore = Depends(get_store)) -> OrderLifecycleManager:
    return _orders(store)
