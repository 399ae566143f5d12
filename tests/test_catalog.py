"""
Menu catalog over the row store.

Covers:
  Categories:
  - listed by display_order, scoped to one restaurant
  - blank names rejected
  - delete refused while items reference the category
  Items:
  - newest first, hydrated with variants and their add-on groups
  - update clears description but ignores null for required fields
  - prices come back as exact decimals
  - delete removes variants and links first
  - closing a stream early leaves no hydration running
  Variants:
  - save_variants assigns display_order by list position
  - save_variants replaces the previous list and its links
  - unknown or foreign add-on groups rejected before anything is written
  - concurrent saves for one item never interleave
  Links:
  - set/get round trip keeps order and drops duplicates
  Hydration:
  - failing group lookups degrade to an empty list
  - failing variant lookups propagate
"""
import asyncio
from contextlib import aclosing
from decimal import Decimal

import pytest

from app.core.errors import NotFound, PartialWriteFailure, StoreUnavailable, ValidationFailure
from app.repositories.catalog import CatalogRepository
from app.schemas.addon import AddOnGroupCreate
from app.schemas.menu import (
    CategoryCreate,
    CategoryUpdate,
    MenuItemCreate,
    MenuItemUpdate,
    VariantCreate,
    VariantIn,
    VariantUpdate,
)


async def _category(catalog, restaurant, name="Drinks", display_order=0):
    return await catalog.create_category(
        CategoryCreate(restaurant_id=restaurant["id"], name=name, display_order=display_order)
    )


async def _item(catalog, category, name="Chai", price=3.5):
    return await catalog.create_item(MenuItemCreate(category_id=category.id, name=name, price=price))


async def _group(addons, restaurant, name="Milk"):
    return await addons.create_group(AddOnGroupCreate(restaurant_id=restaurant["id"], name=name))


class TestCategories:
    async def test_sorted_by_display_order(self, catalog, restaurant, other_restaurant):
        await _category(catalog, restaurant, "Desserts", 2)
        await _category(catalog, restaurant, "Drinks", 0)
        await _category(catalog, restaurant, "Mains", 1)
        await _category(catalog, other_restaurant, "Elsewhere", 0)

        names = [c.name for c in await catalog.list_categories(restaurant["id"])]
        assert names == ["Drinks", "Mains", "Desserts"]

    async def test_blank_name_rejected(self, catalog, restaurant):
        with pytest.raises(ValidationFailure) as exc:
            await _category(catalog, restaurant, "   ")
        assert exc.value.field == "name"

    async def test_update(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        updated = await catalog.update_category(category.id, CategoryUpdate(display_order=5))
        assert updated.display_order == 5
        assert updated.name == "Drinks"

    async def test_update_ignores_null_for_required_fields(self, catalog, restaurant):
        category = await _category(catalog, restaurant, display_order=3)
        updated = await catalog.update_category(
            category.id, CategoryUpdate(name=None, display_order=None, description=None)
        )
        assert updated.name == "Drinks"
        assert updated.display_order == 3
        assert updated.description is None

    async def test_update_missing(self, catalog):
        with pytest.raises(NotFound):
            await catalog.update_category("nope", CategoryUpdate(name="x"))

    async def test_delete_refused_while_items_exist(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)

        with pytest.raises(ValidationFailure):
            await catalog.delete_category(category.id)
        assert (await catalog.get_category(category.id)).id == category.id

        await catalog.delete_item(item.id)
        deleted = await catalog.delete_category(category.id)
        assert deleted.id == category.id
        with pytest.raises(NotFound):
            await catalog.get_category(category.id)


class TestItems:
    async def test_create_requires_category(self, catalog):
        with pytest.raises(NotFound):
            await catalog.create_item(MenuItemCreate(category_id="missing", name="Chai", price=1))

    async def test_prices_are_exact(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category, price=Decimal("19.99"))
        (variant,) = await catalog.save_variants(item.id, [VariantIn(name="Large", additional_price=Decimal("0.10"))])

        fetched = await catalog.get_item(item.id)
        assert fetched.price == Decimal("19.99")
        assert fetched.price + variant.additional_price == Decimal("20.09")

    async def test_list_newest_first_with_variants(self, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        first = await _item(catalog, category, "First")
        await asyncio.sleep(0.01)
        second = await _item(catalog, category, "Second")
        group = await _group(addons, restaurant)
        await catalog.save_variants(first.id, [VariantIn(name="Large", addon_groups=[group.id])])

        items = await catalog.list_items(category.id)
        assert [i.id for i in items] == [second.id, first.id]
        assert items[1].variants[0].name == "Large"
        assert items[1].variants[0].addon_groups == [group.id]
        assert items[0].variants == []

    async def test_stream_items_can_stop_early(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        for n in range(6):
            await _item(catalog, category, f"Item {n}")

        seen = []
        async with aclosing(catalog.stream_items(category.id)) as stream:
            async for item in stream:
                seen.append(item)
                if len(seen) == 2:
                    break

        assert len(seen) == 2
        hydrating = [
            t for t in asyncio.all_tasks()
            if getattr(t.get_coro(), "__name__", None) in ("_hydrate_item", "_hydrate_variant")
        ]
        assert hydrating == []

    async def test_update_clears_description_keeps_name(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await catalog.create_item(
            MenuItemCreate(category_id=category.id, name="Chai", price=3, description="Spiced")
        )
        updated = await catalog.update_item(item.id, MenuItemUpdate(description=None, name=None, price=4))
        assert updated.description is None
        assert updated.name == "Chai"
        assert updated.price == 4

    async def test_availability(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        await catalog.set_item_availability(item.id, False)
        assert (await catalog.get_item(item.id)).is_available is False

        with pytest.raises(NotFound):
            await catalog.set_item_availability("missing", True)

    async def test_delete_cascades_children_first(self, store, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        group = await _group(addons, restaurant)
        await catalog.set_item_addon_groups(item.id, [group.id])
        await catalog.save_variants(item.id, [
            VariantIn(name="Small", addon_groups=[group.id]),
            VariantIn(name="Large", addon_groups=[group.id]),
        ])

        removed = await catalog.delete_item(item.id)
        assert removed == {
            "menu_item_variant_addon_groups": 2,
            "menu_item_variants": 2,
            "menu_item_addon_groups": 1,
            "menu_items": 1,
        }
        assert await store.count("menu_item_variants") == 0
        with pytest.raises(NotFound):
            await catalog.get_item(item.id)

    async def test_delete_missing_is_not_found(self, catalog):
        with pytest.raises(NotFound):
            await catalog.delete_item("missing")


class TestVariants:
    async def test_display_order_follows_list_position(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)

        saved = await catalog.save_variants(
            item.id,
            [VariantIn(name="Small"), VariantIn(name="Medium", additional_price=0.5), VariantIn(name="Large")],
            user_id="owner-1",
        )
        assert [(v.name, v.display_order) for v in saved] == [("Small", 0), ("Medium", 1), ("Large", 2)]
        assert {v.user_id for v in saved} == {"owner-1"}

        fetched = await catalog.get_variants(item.id)
        assert [v.name for v in fetched] == ["Small", "Medium", "Large"]

    async def test_save_replaces_previous_list(self, store, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        group = await _group(addons, restaurant)
        old = await catalog.save_variants(item.id, [VariantIn(name="Old", addon_groups=[group.id])])

        new = await catalog.save_variants(item.id, [VariantIn(name="New")])

        assert [v.name for v in await catalog.get_variants(item.id)] == ["New"]
        assert new[0].id != old[0].id
        assert await store.count("menu_item_variant_addon_groups", {"variant_id": old[0].id}) == 0

    async def test_empty_list_removes_all(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        await catalog.save_variants(item.id, [VariantIn(name="Only")])

        assert await catalog.save_variants(item.id, []) == []
        assert await catalog.get_variants(item.id) == []

    async def test_unknown_group_rejected_before_writing(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        await catalog.save_variants(item.id, [VariantIn(name="Keep")])

        with pytest.raises(ValidationFailure):
            await catalog.save_variants(item.id, [VariantIn(name="Bad", addon_groups=["missing"])])
        assert [v.name for v in await catalog.get_variants(item.id)] == ["Keep"]

    async def test_foreign_group_rejected(self, catalog, addons, restaurant, other_restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        foreign = await _group(addons, other_restaurant)

        with pytest.raises(ValidationFailure):
            await catalog.save_variants(
                item.id, [VariantIn(name="X", addon_groups=[foreign.id])], restaurant_id=restaurant["id"]
            )

    async def test_missing_item(self, catalog):
        with pytest.raises(NotFound):
            await catalog.save_variants("missing", [VariantIn(name="X")])

    async def test_concurrent_saves_do_not_interleave(self, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)

        await asyncio.gather(
            catalog.save_variants(item.id, [VariantIn(name="A1"), VariantIn(name="A2")]),
            catalog.save_variants(item.id, [VariantIn(name="B1"), VariantIn(name="B2"), VariantIn(name="B3")]),
        )

        names = [v.name for v in await catalog.get_variants(item.id)]
        assert names in (["A1", "A2"], ["B1", "B2", "B3"])

    async def test_failure_after_delete_is_partial(self, flaky_store, catalog, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        await catalog.save_variants(item.id, [VariantIn(name="Old")])

        broken = CatalogRepository(
            flaky_store(("insert", "menu_item_variants"), StoreUnavailable("menu_item_variants", "insert")),
            hydration_concurrency=2,
        )
        with pytest.raises(PartialWriteFailure) as exc:
            await broken.save_variants(item.id, [VariantIn(name="New")])
        assert exc.value.phase == "insert_variants"
        assert "delete_variants" in exc.value.committed
        assert await catalog.get_variants(item.id) == []

    async def test_create_and_update_variant(self, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        group = await _group(addons, restaurant)

        variant = await catalog.create_variant(
            VariantCreate(menu_item_id=item.id, name="Half", addon_groups=[group.id, group.id], display_order=3),
            user_id="owner-1",
        )
        assert variant.addon_groups == [group.id]
        assert variant.display_order == 3

        fetched = await catalog.get_variant(variant.id)
        assert fetched.user_id == "owner-1"
        assert fetched.addon_groups == [group.id]

        updated = await catalog.update_variant(
            variant.id, VariantUpdate(name="Half plate", additional_price=None, display_order=None)
        )
        assert updated.name == "Half plate"
        assert updated.additional_price == 0
        assert updated.display_order == 3
        assert updated.addon_groups == [group.id]


class TestLinks:
    async def test_variant_groups_round_trip(self, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        milk = await _group(addons, restaurant, "Milk")
        sugar = await _group(addons, restaurant, "Sugar")
        (variant,) = await catalog.save_variants(item.id, [VariantIn(name="Regular")])

        stored = await catalog.set_variant_addon_groups(variant.id, [sugar.id, milk.id, sugar.id])
        assert stored == [sugar.id, milk.id]
        assert await catalog.get_variant_addon_groups(variant.id) == [sugar.id, milk.id]

        assert await catalog.set_variant_addon_groups(variant.id, []) == []
        assert await catalog.get_variant_addon_groups(variant.id) == []

    async def test_item_groups_round_trip(self, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        milk = await _group(addons, restaurant, "Milk")

        await catalog.set_item_addon_groups(item.id, [milk.id])
        assert await catalog.get_item_addon_groups(item.id) == [milk.id]

    async def test_missing_variant(self, catalog):
        with pytest.raises(NotFound):
            await catalog.set_variant_addon_groups("missing", [])

    async def test_delete_addon_group_clears_links(self, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        group = await _group(addons, restaurant)
        (variant,) = await catalog.save_variants(item.id, [VariantIn(name="Regular", addon_groups=[group.id])])

        removed = await catalog.delete_addon_group(group.id)

        assert removed["addon_groups"] == 1
        assert await catalog.get_variant_addon_groups(variant.id) == []
        with pytest.raises(NotFound):
            await addons.get_group(group.id)


class TestHydration:
    async def test_group_failure_degrades_to_empty(self, flaky_store, catalog, addons, restaurant):
        category = await _category(catalog, restaurant)
        item = await _item(catalog, category)
        group = await _group(addons, restaurant)
        await catalog.save_variants(item.id, [VariantIn(name="Large", addon_groups=[group.id])])

        degraded = CatalogRepository(
            flaky_store(
                ("select", "menu_item_variant_addon_groups"),
                StoreUnavailable("menu_item_variant_addon_groups", "select"),
            ),
            hydration_concurrency=2,
        )
        (hydrated,) = await degraded.list_items(category.id)
        assert hydrated.variants[0].name == "Large"
        assert hydrated.variants[0].addon_groups == []

    async def test_variant_failure_propagates(self, flaky_store, catalog, restaurant):
        category = await _category(catalog, restaurant)
        await _item(catalog, category)

        broken = CatalogRepository(
            flaky_store(("select", "menu_item_variants"), StoreUnavailable("menu_item_variants", "select")),
            hydration_concurrency=2,
        )
        with pytest.raises(StoreUnavailable):
            await broken.list_items(category.id)
