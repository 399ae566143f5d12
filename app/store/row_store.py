"""
Generic row-oriented access to the relational store.

Each public call is one statement in its own short transaction: there is no
way to group two calls atomically, no joins and no cascading deletes. Filters
are plain ``{column: value}`` dicts; a list/tuple/set value means "column IN
(...)". Successful writes are published to the ``ChangeFeed`` after commit.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.errors import NotFound, StoreUnavailable, ValidationFailure
from app.models.base import Base
from app.store.changes import ChangeEvent, ChangeFeed, ChangeType

log = logging.getLogger(__name__)

Row = Dict[str, Any]
Filters = Dict[str, Any]


class RowStore:
    def __init__(self, engine: AsyncEngine, feed: Optional[ChangeFeed] = None, metadata=None):
        self.engine = engine
        self.feed = feed
        self.metadata = metadata if metadata is not None else Base.metadata

    def table(self, name: str) -> Table:
        try:
            return self.metadata.tables[name]
        except KeyError:
            raise ValueError(f"Unknown table {name!r}") from None

    # ----- reads

    async def select(
        self,
        table_name: str,
        filters: Optional[Filters] = None,
        *,
        columns: Optional[Iterable[str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        table = self.table(table_name)
        cols = [table.c[c] for c in columns] if columns else [table]
        stmt = select(*cols).where(*self._where(table, filters))
        if order_by:
            col = table.c[order_by]
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        if limit:
            stmt = stmt.limit(limit)

        async with self._call(table_name, "select") as conn:
            result = await conn.execute(stmt)
            return [dict(r._mapping) for r in result]

    async def select_one(self, table_name: str, filters: Filters, *, columns: Optional[Iterable[str]] = None) -> Row:
        """Exactly one row matching ``filters``; NotFound when there is none."""
        rows = await self.select(table_name, filters, columns=columns, limit=1)
        if not rows:
            raise NotFound(table_name, filters)
        return rows[0]

    async def count(self, table_name: str, filters: Optional[Filters] = None) -> int:
        """Count-only mode: no rows are materialised."""
        table = self.table(table_name)
        stmt = select(func.count()).select_from(table).where(*self._where(table, filters))
        async with self._call(table_name, "count") as conn:
            return (await conn.execute(stmt)).scalar_one()

    async def exists(self, table_name: str, filters: Filters) -> bool:
        table = self.table(table_name)
        pk = list(table.primary_key.columns)[0]
        stmt = select(pk).where(*self._where(table, filters)).limit(1)
        async with self._call(table_name, "exists") as conn:
            return (await conn.execute(stmt)).first() is not None

    # ----- writes

    async def insert(self, table_name: str, rows: List[Row]) -> List[Row]:
        if not rows:
            return []
        table = self.table(table_name)
        stmt = insert(table).returning(*table.c)
        async with self._call(table_name, "insert") as conn:
            result = await conn.execute(stmt, rows)
            written = [dict(r._mapping) for r in result]

        self._publish(table_name, ChangeType.INSERT, new_rows=written)
        return written

    async def insert_one(self, table_name: str, row: Row) -> Row:
        return (await self.insert(table_name, [row]))[0]

    async def update(self, table_name: str, values: Row, filters: Filters) -> List[Row]:
        table = self.table(table_name)
        stmt = (
            update(table)
            .where(*self._where(table, filters, required=True))
            .values(**values)
            .returning(*table.c)
        )
        async with self._call(table_name, "update") as conn:
            result = await conn.execute(stmt)
            written = [dict(r._mapping) for r in result]

        self._publish(table_name, ChangeType.UPDATE, new_rows=written)
        return written

    async def delete(self, table_name: str, filters: Filters) -> List[Row]:
        table = self.table(table_name)
        stmt = delete(table).where(*self._where(table, filters, required=True)).returning(*table.c)
        async with self._call(table_name, "delete") as conn:
            result = await conn.execute(stmt)
            removed = [dict(r._mapping) for r in result]

        self._publish(table_name, ChangeType.DELETE, old_rows=removed)
        return removed

    # ----- internals

    def _where(self, table: Table, filters: Optional[Filters], required: bool = False) -> list:
        if not filters:
            if required:
                raise ValidationFailure(f"Refusing unfiltered write on {table.name!r}")
            return []
        clauses = []
        for name, value in filters.items():
            col = table.c[name]
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(col.in_(list(value)))
            elif value is None:
                clauses.append(col.is_(None))
            else:
                clauses.append(col == value)
        return clauses

    @asynccontextmanager
    async def _call(self, table_name: str, operation: str):
        try:
            async with self.engine.begin() as conn:
                yield conn
        except IntegrityError as exc:
            log.warning("%s on %s rejected by store: %s", operation, table_name, exc.orig)
            raise ValidationFailure(f"{operation} on {table_name!r} rejected: {exc.orig}") from exc
        except (SQLAlchemyError, OSError) as exc:
            log.error("%s on %s failed: %s", operation, table_name, exc)
            raise StoreUnavailable(table_name, operation, type(exc).__name__) from exc

    def _publish(self, table_name: str, change: ChangeType, new_rows=(), old_rows=()) -> None:
        if self.feed is None:
            return
        for row in new_rows:
            self.feed.publish(ChangeEvent(table_name, change, new=row))
        for row in old_rows:
            self.feed.publish(ChangeEvent(table_name, change, old=row))
