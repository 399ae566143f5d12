import asyncio
import logging
import uuid
from functools import partial
from typing import Dict, List

from app.core.errors import NotFound, ValidationFailure
from app.core.saga import Saga
from app.schemas.addon import (
    AddOnCreate,
    AddOnGroupCreate,
    AddOnGroupRead,
    AddOnGroupUpdate,
    AddOnRead,
    AddOnUpdate,
)
from app.store.row_store import RowStore

log = logging.getLogger(__name__)

GROUPS = "addon_groups"
ADDONS = "addons"
ITEM_GROUPS = "menu_item_addon_groups"
VARIANT_GROUPS = "menu_item_variant_addon_groups"


def _require_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("name is required", field="name")
    return name


class AddOnRepository:
    def __init__(self, store: RowStore):
        self.store = store

    # ---------- Groups ----------

    async def list_groups(self, restaurant_id: str) -> List[AddOnGroupRead]:
        """Groups oldest first, each with the number of add-ons it owns."""
        rows = await self.store.select(GROUPS, {"restaurant_id": restaurant_id}, order_by="created_at")
        counts = await asyncio.gather(*(self.store.count(ADDONS, {"addon_group_id": r["id"]}) for r in rows))
        return [AddOnGroupRead(**r, item_count=c) for r, c in zip(rows, counts)]

    async def get_group(self, group_id: str) -> AddOnGroupRead:
        row = await self.store.select_one(GROUPS, {"id": group_id})
        count = await self.store.count(ADDONS, {"addon_group_id": group_id})
        return AddOnGroupRead(**row, item_count=count)

    async def create_group(self, group: AddOnGroupCreate) -> AddOnGroupRead:
        if not group.restaurant_id:
            raise ValidationFailure("restaurant_id is required", field="restaurant_id")
        row = await self.store.insert_one(GROUPS, {
            "id": str(uuid.uuid4()),
            "restaurant_id": group.restaurant_id,
            "name": _require_name(group.name),
            "description": group.description,
            "is_required": group.is_required,
            "max_selections": group.max_selections,
        })
        log.info("addon group created: restaurant=%s group=%s", row["restaurant_id"], row["id"])
        return AddOnGroupRead(**row, item_count=0)

    async def update_group(self, group_id: str, updates: AddOnGroupUpdate) -> AddOnGroupRead:
        values = {
            k: v for k, v in updates.model_dump(exclude_unset=True).items()
            if v is not None or k in ("description", "max_selections")
        }
        if "name" in values:
            values["name"] = _require_name(values["name"])
        if not values:
            return await self.get_group(group_id)
        rows = await self.store.update(GROUPS, values, {"id": group_id})
        if not rows:
            raise NotFound("addon_group", group_id)
        count = await self.store.count(ADDONS, {"addon_group_id": group_id})
        return AddOnGroupRead(**rows[0], item_count=count)

    async def delete_group(self, group_id: str) -> Dict[str, int]:
        """
        Delete a group after everything that points at it: its add-ons, then
        the item and variant links, then the group row itself.
        """
        saga = Saga("delete_addon_group")
        await saga.run("lookup", partial(self.store.select_one, GROUPS, {"id": group_id}))
        removed = {}
        for table, column in ((ADDONS, "addon_group_id"), (ITEM_GROUPS, "addon_group_id"), (VARIANT_GROUPS, "addon_group_id")):
            rows = await saga.run(table, partial(self.store.delete, table, {column: group_id}))
            removed[table] = len(rows)
        rows = await saga.run(GROUPS, partial(self.store.delete, GROUPS, {"id": group_id}))
        removed[GROUPS] = len(rows)

        log.info("addon group deleted: group=%s removed=%s", group_id, removed)
        return removed

    # ---------- Add-ons ----------

    async def list_addons(self, group_id: str) -> List[AddOnRead]:
        rows = await self.store.select(ADDONS, {"addon_group_id": group_id}, order_by="created_at")
        return [AddOnRead(**r) for r in rows]

    async def get_addon(self, addon_id: str) -> AddOnRead:
        return AddOnRead(**await self.store.select_one(ADDONS, {"id": addon_id}))

    async def create_addon(self, addon: AddOnCreate) -> AddOnRead:
        name = _require_name(addon.name)
        if not await self.store.exists(GROUPS, {"id": addon.addon_group_id}):
            raise NotFound("addon_group", addon.addon_group_id)
        row = await self.store.insert_one(ADDONS, {
            "id": str(uuid.uuid4()),
            "addon_group_id": addon.addon_group_id,
            "name": name,
            "price": addon.price,
            "is_available": addon.is_available,
        })
        return AddOnRead(**row)

    async def update_addon(self, addon_id: str, updates: AddOnUpdate) -> AddOnRead:
        values = updates.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in values:
            values["name"] = _require_name(values["name"])
        if not values:
            return await self.get_addon(addon_id)
        rows = await self.store.update(ADDONS, values, {"id": addon_id})
        if not rows:
            raise NotFound("addon", addon_id)
        return AddOnRead(**rows[0])

    async def delete_addon(self, addon_id: str) -> None:
        removed = await self.store.delete(ADDONS, {"id": addon_id})
        if not removed:
            raise NotFound("addon", addon_id)
