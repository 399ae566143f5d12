"""
Menu catalog: categories -> items -> variants -> add-on group links.

The store has no joins, so a menu tree is assembled from sequential dependent
reads (items, then variants per item, then group links per variant). Those
reads fan out through ``ordered_window`` with a shared request limit.

Add-on group associations live in the link tables only
(``menu_item_addon_groups`` and ``menu_item_variant_addon_groups``); the
variant row carries no copy of them.
"""
import asyncio
import logging
import uuid
from contextlib import aclosing
from functools import partial
from typing import AsyncIterator, Dict, List, Optional, Sequence

from app.core.config import get_settings
from app.core.errors import NotFound, RestaurantDataError, ValidationFailure
from app.core.saga import Saga
from app.repositories.addons import AddOnRepository
from app.schemas.menu import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemRead,
    MenuItemUpdate,
    VariantCreate,
    VariantIn,
    VariantRead,
    VariantUpdate,
)
from app.store.row_store import RowStore
from app.utils.hydration import ordered_window
from app.utils.locks import KeyedLocks

log = logging.getLogger(__name__)

CATEGORIES = "categories"
ITEMS = "menu_items"
VARIANTS = "menu_item_variants"
ITEM_GROUPS = "menu_item_addon_groups"
VARIANT_GROUPS = "menu_item_variant_addon_groups"
GROUPS = "addon_groups"


def _require_name(name: Optional[str], field: str = "name") -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure(f"{field} is required", field=field)
    return name


def _update_values(updates, clearable: Sequence[str] = ()) -> dict:
    """Fields the caller set. An explicit null only clears the columns in ``clearable``."""
    return {
        k: v for k, v in updates.model_dump(exclude_unset=True).items()
        if v is not None or k in clearable
    }


def _dedupe(ids: Sequence[str]) -> List[str]:
    seen = set()
    out = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


class CatalogRepository:
    def __init__(self, store: RowStore, hydration_concurrency: Optional[int] = None):
        self.store = store
        self.hydration_concurrency = hydration_concurrency or get_settings().hydration_concurrency
        # serializes replace-all writes per item / variant within this process
        self._locks = KeyedLocks()

    # ---------- Categories ----------

    async def list_categories(self, restaurant_id: str) -> List[CategoryRead]:
        rows = await self.store.select(CATEGORIES, {"restaurant_id": restaurant_id}, order_by="display_order")
        return [CategoryRead(**r) for r in rows]

    async def get_category(self, category_id: str) -> CategoryRead:
        row = await self.store.select_one(CATEGORIES, {"id": category_id})
        return CategoryRead(**row)

    async def create_category(self, category: CategoryCreate) -> CategoryRead:
        if not category.restaurant_id:
            raise ValidationFailure("restaurant_id is required", field="restaurant_id")
        row = await self.store.insert_one(CATEGORIES, {
            "id": str(uuid.uuid4()),
            "restaurant_id": category.restaurant_id,
            "name": _require_name(category.name),
            "description": category.description,
            "display_order": category.display_order,
        })
        log.info("category created: restaurant=%s category=%s", row["restaurant_id"], row["id"])
        return CategoryRead(**row)

    async def update_category(self, category_id: str, updates: CategoryUpdate) -> CategoryRead:
        values = _update_values(updates, clearable=("description",))
        if "name" in values:
            values["name"] = _require_name(values["name"])
        if not values:
            return await self.get_category(category_id)
        rows = await self.store.update(CATEGORIES, values, {"id": category_id})
        if not rows:
            raise NotFound("category", category_id)
        return CategoryRead(**rows[0])

    async def delete_category(self, category_id: str) -> CategoryRead:
        """Refuses while menu items still reference the category."""
        category = await self.get_category(category_id)
        in_use = await self.store.count(ITEMS, {"category_id": category_id})
        if in_use:
            log.warning("category delete refused: category=%s items=%s", category_id, in_use)
            raise ValidationFailure(
                f"Category still has {in_use} menu item(s); move or delete them first",
                field="category_id",
            )
        removed = await self.store.delete(CATEGORIES, {"id": category_id})
        if not removed:
            raise NotFound("category", category_id)
        return category

    # ---------- Menu items ----------

    async def list_items(self, category_id: str) -> List[MenuItemRead]:
        """Items of a category, newest first, each with variants and their add-on groups."""
        return [item async for item in self.stream_items(category_id)]

    async def stream_items(self, category_id: str) -> AsyncIterator[MenuItemRead]:
        """
        Lazy form of ``list_items``. At most ``hydration_concurrency`` store
        requests are outstanding at once; closing the iterator cancels the rest.
        """
        rows = await self.store.select(ITEMS, {"category_id": category_id}, order_by="created_at", descending=True)
        limiter = asyncio.Semaphore(self.hydration_concurrency)
        window = ordered_window(rows, partial(self._hydrate_item, limiter=limiter), self.hydration_concurrency)
        async with aclosing(window):
            async for item in window:
                yield item

    async def get_item(self, item_id: str) -> MenuItemRead:
        row = await self.store.select_one(ITEMS, {"id": item_id})
        return await self._hydrate_item(row)

    async def create_item(self, item: MenuItemCreate) -> MenuItemRead:
        name = _require_name(item.name)
        if not await self.store.exists(CATEGORIES, {"id": item.category_id}):
            raise NotFound("category", item.category_id)
        row = await self.store.insert_one(ITEMS, {
            "id": str(uuid.uuid4()),
            "category_id": item.category_id,
            "name": name,
            "description": item.description,
            "price": item.price,
            "is_available": item.is_available,
            "image_url": item.image_url,
        })
        log.info("menu item created: category=%s item=%s", row["category_id"], row["id"])
        return MenuItemRead(**row)

    async def update_item(self, item_id: str, updates: MenuItemUpdate) -> MenuItemRead:
        values = _update_values(updates, clearable=("description", "image_url"))
        if "name" in values:
            values["name"] = _require_name(values["name"])
        if values.get("category_id") and not await self.store.exists(CATEGORIES, {"id": values["category_id"]}):
            raise NotFound("category", values["category_id"])
        if not values:
            return await self.get_item(item_id)
        rows = await self.store.update(ITEMS, values, {"id": item_id})
        if not rows:
            raise NotFound("menu_item", item_id)
        return await self._hydrate_item(rows[0])

    async def set_item_availability(self, item_id: str, is_available: bool) -> None:
        rows = await self.store.update(ITEMS, {"is_available": is_available}, {"id": item_id})
        if not rows:
            raise NotFound("menu_item", item_id)

    async def delete_item(self, item_id: str) -> Dict[str, int]:
        """
        Removes the item and everything hanging off it, children first:
        variant group links, variants, item group links, then the item row.
        """
        async with self._locks.hold(("item", item_id)):
            saga = Saga("delete_menu_item")
            await saga.run("lookup", partial(self.store.select_one, ITEMS, {"id": item_id}))
            variant_ids = [
                v["id"] for v in await saga.run(
                    "variants_lookup",
                    partial(self.store.select, VARIANTS, {"menu_item_id": item_id}, columns=["id"]),
                )
            ]
            removed = {}
            if variant_ids:
                rows = await saga.run(VARIANT_GROUPS, partial(self.store.delete, VARIANT_GROUPS, {"variant_id": variant_ids}))
                removed[VARIANT_GROUPS] = len(rows)
            rows = await saga.run(VARIANTS, partial(self.store.delete, VARIANTS, {"menu_item_id": item_id}))
            removed[VARIANTS] = len(rows)
            rows = await saga.run(ITEM_GROUPS, partial(self.store.delete, ITEM_GROUPS, {"menu_item_id": item_id}))
            removed[ITEM_GROUPS] = len(rows)
            rows = await saga.run(ITEMS, partial(self.store.delete, ITEMS, {"id": item_id}))
            removed[ITEMS] = len(rows)

        log.info("menu item deleted: item=%s removed=%s", item_id, removed)
        return removed

    # ---------- Variants ----------

    async def get_variants(self, item_id: str) -> List[VariantRead]:
        rows = await self.store.select(VARIANTS, {"menu_item_id": item_id}, order_by="display_order")
        limiter = asyncio.Semaphore(self.hydration_concurrency)
        return list(await asyncio.gather(*(self._hydrate_variant(r, limiter) for r in rows)))

    async def save_variants(
        self,
        item_id: str,
        variants: Sequence[VariantIn],
        *,
        user_id: Optional[str] = None,
        restaurant_id: Optional[str] = None,
    ) -> List[VariantRead]:
        """
        Replace every variant of an item with ``variants``.

        Old rows (and their group links) are deleted and the new list inserted
        with ``display_order`` set to list position, so variant ids change on
        every save. ``user_id`` is recorded on each inserted row; when
        ``restaurant_id`` is given, linked groups must belong to it.
        """
        rows = []
        links = []
        for index, variant in enumerate(variants):
            variant_id = str(uuid.uuid4())
            rows.append({
                "id": variant_id,
                "menu_item_id": item_id,
                "name": _require_name(variant.name, field=f"variants[{index}].name"),
                "additional_price": variant.additional_price,
                "image_url": variant.image_url,
                "display_order": index,
                "user_id": user_id,
            })
            for position, group_id in enumerate(_dedupe(variant.addon_groups)):
                links.append({"variant_id": variant_id, "addon_group_id": group_id, "position": position})

        await self._check_groups_exist([link["addon_group_id"] for link in links], restaurant_id)

        async with self._locks.hold(("item", item_id)):
            saga = Saga("save_variants")
            await saga.run("lookup", partial(self.store.select_one, ITEMS, {"id": item_id}, columns=["id"]))
            old_ids = [
                v["id"] for v in await saga.run(
                    "variants_lookup",
                    partial(self.store.select, VARIANTS, {"menu_item_id": item_id}, columns=["id"]),
                )
            ]
            if old_ids:
                await saga.run("delete_variant_addon_groups", partial(self.store.delete, VARIANT_GROUPS, {"variant_id": old_ids}))
            await saga.run("delete_variants", partial(self.store.delete, VARIANTS, {"menu_item_id": item_id}))
            written = await saga.run("insert_variants", partial(self.store.insert, VARIANTS, rows))
            await saga.run("insert_variant_addon_groups", partial(self.store.insert, VARIANT_GROUPS, links))

        log.info(
            "variants saved: item=%s user=%s replaced=%s inserted=%s",
            item_id, user_id, len(old_ids), len(written),
        )
        groups_by_variant: Dict[str, List[str]] = {}
        for link in links:
            groups_by_variant.setdefault(link["variant_id"], []).append(link["addon_group_id"])
        written.sort(key=lambda r: r["display_order"])
        return [VariantRead(**r, addon_groups=groups_by_variant.get(r["id"], [])) for r in written]

    async def get_variant(self, variant_id: str) -> VariantRead:
        row = await self.store.select_one(VARIANTS, {"id": variant_id})
        return VariantRead(**row, addon_groups=await self.get_variant_addon_groups(variant_id))

    async def create_variant(
        self,
        variant: VariantCreate,
        *,
        user_id: Optional[str] = None,
        restaurant_id: Optional[str] = None,
    ) -> VariantRead:
        name = _require_name(variant.name)
        group_ids = _dedupe(variant.addon_groups)
        await self._check_groups_exist(group_ids, restaurant_id)
        if not await self.store.exists(ITEMS, {"id": variant.menu_item_id}):
            raise NotFound("menu_item", variant.menu_item_id)

        saga = Saga("create_variant")
        row = await saga.run("insert_variant", partial(self.store.insert_one, VARIANTS, {
            "id": str(uuid.uuid4()),
            "menu_item_id": variant.menu_item_id,
            "name": name,
            "additional_price": variant.additional_price,
            "image_url": variant.image_url,
            "display_order": variant.display_order,
            "user_id": user_id,
        }))
        await saga.run("insert_variant_addon_groups", partial(
            self.store.insert,
            VARIANT_GROUPS,
            [{"variant_id": row["id"], "addon_group_id": g, "position": i} for i, g in enumerate(group_ids)],
        ))
        return VariantRead(**row, addon_groups=group_ids)

    async def update_variant(self, variant_id: str, updates: VariantUpdate) -> VariantRead:
        values = _update_values(updates, clearable=("image_url",))
        if "name" in values:
            values["name"] = _require_name(values["name"])
        if values:
            rows = await self.store.update(VARIANTS, values, {"id": variant_id})
            if not rows:
                raise NotFound("menu_item_variant", variant_id)
            row = rows[0]
        else:
            row = await self.store.select_one(VARIANTS, {"id": variant_id})
        return VariantRead(**row, addon_groups=await self.get_variant_addon_groups(variant_id))

    # ---------- Add-on group links ----------

    async def get_item_addon_groups(self, item_id: str) -> List[str]:
        rows = await self.store.select(ITEM_GROUPS, {"menu_item_id": item_id}, columns=["addon_group_id"], order_by="position")
        return [r["addon_group_id"] for r in rows]

    async def set_item_addon_groups(
        self, item_id: str, group_ids: Sequence[str], *, restaurant_id: Optional[str] = None
    ) -> List[str]:
        group_ids = _dedupe(group_ids)
        await self._check_groups_exist(group_ids, restaurant_id)
        async with self._locks.hold(("item-groups", item_id)):
            saga = Saga("set_item_addon_groups")
            await saga.run("lookup", partial(self.store.select_one, ITEMS, {"id": item_id}, columns=["id"]))
            await saga.run("delete_links", partial(self.store.delete, ITEM_GROUPS, {"menu_item_id": item_id}))
            await saga.run("insert_links", partial(
                self.store.insert,
                ITEM_GROUPS,
                [{"menu_item_id": item_id, "addon_group_id": g, "position": i} for i, g in enumerate(group_ids)],
            ))
        log.info("item add-on groups set: item=%s groups=%s", item_id, len(group_ids))
        return group_ids

    async def get_variant_addon_groups(self, variant_id: str) -> List[str]:
        rows = await self.store.select(VARIANT_GROUPS, {"variant_id": variant_id}, columns=["addon_group_id"], order_by="position")
        return [r["addon_group_id"] for r in rows]

    async def set_variant_addon_groups(
        self, variant_id: str, group_ids: Sequence[str], *, restaurant_id: Optional[str] = None
    ) -> List[str]:
        group_ids = _dedupe(group_ids)
        await self._check_groups_exist(group_ids, restaurant_id)
        async with self._locks.hold(("variant-groups", variant_id)):
            saga = Saga("set_variant_addon_groups")
            await saga.run("lookup", partial(self.store.select_one, VARIANTS, {"id": variant_id}, columns=["id"]))
            await saga.run("delete_links", partial(self.store.delete, VARIANT_GROUPS, {"variant_id": variant_id}))
            await saga.run("insert_links", partial(
                self.store.insert,
                VARIANT_GROUPS,
                [{"variant_id": variant_id, "addon_group_id": g, "position": i} for i, g in enumerate(group_ids)],
            ))
        log.info("variant add-on groups set: variant=%s groups=%s", variant_id, len(group_ids))
        return group_ids

    async def delete_addon_group(self, group_id: str) -> Dict[str, int]:
        """Add-ons first, then item and variant links, then the group row."""
        return await AddOnRepository(self.store).delete_group(group_id)

    # ---------- internals ----------

    async def _check_groups_exist(self, group_ids: Sequence[str], restaurant_id: Optional[str] = None) -> None:
        wanted = set(group_ids)
        if not wanted:
            return
        filters = {"id": list(wanted)}
        if restaurant_id:
            filters["restaurant_id"] = restaurant_id
        found = await self.store.count(GROUPS, filters)
        if found != len(wanted):
            raise ValidationFailure("Unknown add-on group id in list", field="addon_group_ids")

    async def _hydrate_item(self, row: dict, limiter: Optional[asyncio.Semaphore] = None) -> MenuItemRead:
        limiter = limiter or asyncio.Semaphore(self.hydration_concurrency)
        async with limiter:
            variant_rows = await self.store.select(VARIANTS, {"menu_item_id": row["id"]}, order_by="display_order")
        variants = await asyncio.gather(*(self._hydrate_variant(v, limiter) for v in variant_rows))
        return MenuItemRead(**row, variants=list(variants))

    async def _hydrate_variant(self, row: dict, limiter: asyncio.Semaphore) -> VariantRead:
        try:
            async with limiter:
                groups = await self.get_variant_addon_groups(row["id"])
        except RestaurantDataError as exc:
            # variant is returned without groups
            log.warning("add-on groups unavailable for variant=%s: %s", row["id"], exc)
            groups = []
        return VariantRead(**row, addon_groups=groups)
