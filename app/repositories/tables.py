import logging
import uuid
from typing import List

from app.core.errors import NotFound, ValidationFailure
from app.schemas.table import TableCreate, TableRead, TableUpdate
from app.store.row_store import RowStore

log = logging.getLogger(__name__)

TABLES = "tables"


class TableRepository:
    def __init__(self, store: RowStore):
        self.store = store

    async def list_tables(self, restaurant_id: str) -> List[TableRead]:
        rows = await self.store.select(TABLES, {"restaurant_id": restaurant_id}, order_by="table_number")
        return [TableRead(**r) for r in rows]

    async def get_table(self, table_id: str) -> TableRead:
        return TableRead(**await self.store.select_one(TABLES, {"id": table_id}))

    async def create_table(self, table: TableCreate) -> TableRead:
        if not table.restaurant_id:
            raise ValidationFailure("restaurant_id is required", field="restaurant_id")
        row = await self.store.insert_one(TABLES, {
            "id": str(uuid.uuid4()),
            "restaurant_id": table.restaurant_id,
            "table_number": table.table_number,
            "capacity": table.capacity,
            "status": table.status.value,
        })
        log.info("table created: restaurant=%s number=%s", row["restaurant_id"], row["table_number"])
        return TableRead(**row)

    async def update_table(self, table_id: str, updates: TableUpdate) -> TableRead:
        # only number, capacity and status are writable
        values = updates.model_dump(exclude_unset=True, exclude_none=True, mode="json")
        if not values:
            return await self.get_table(table_id)
        rows = await self.store.update(TABLES, values, {"id": table_id})
        if not rows:
            raise NotFound("table", table_id)
        return TableRead(**rows[0])

    async def delete_table(self, table_id: str) -> None:
        """Orders keep their table_id; nothing cascades."""
        removed = await self.store.delete(TABLES, {"id": table_id})
        if not removed:
            raise NotFound("table", table_id)
