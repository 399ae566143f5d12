"""
Order lifecycle.

Covers:
  Create:
  - writes order, then items, then item add-ons
  - total computed from items and add-ons when omitted
  - order number format
  - empty orders and foreign tables rejected
  - item batch failure leaves the order row and reports its id
  Read:
  - list newest first, composed with items, add-ons and table number
  Status:
  - any status accepted by default; strict mode follows the kitchen flow
  Delete:
  - children before parents with per-phase counts
  - second delete is NotFound
  Live feed:
  - subscribers see only their restaurant's orders
"""
import asyncio
from decimal import Decimal

import pytest

from app.core.errors import NotFound, OrderDeletionFailure, PartialOrderCreation, StoreUnavailable, ValidationFailure
from app.models.order import OrderStatus
from app.repositories.orders import OrderLifecycleManager, generate_order_number, order_total
from app.schemas.order import OrderCreate, OrderItemAddOnIn, OrderItemIn
from app.schemas.table import TableCreate
from app.store.changes import ChangeType


def _order(restaurant, table_id=None, **kw):
    return OrderCreate(
        restaurant_id=restaurant["id"],
        table_id=table_id,
        items=[
            OrderItemIn(
                item_name="Chai",
                item_price=Decimal("3.50"),
                quantity=2,
                addons=[OrderItemAddOnIn(addon_name="Oat milk", addon_price=Decimal("0.75"))],
            ),
            OrderItemIn(item_name="Samosa", item_price=Decimal("4.00")),
        ],
        **kw,
    )


class TestHelpers:
    def test_order_number(self):
        assert generate_order_number(1_700_000_123_456) == "ORD123456"
        assert generate_order_number(1_000_000_000_042) == "ORD000042"

    def test_order_total(self):
        # 3.50 * 2 + 0.75 + 4.00
        assert order_total(_order({"id": "r1"})) == Decimal("11.75")

    def test_status_flow(self):
        assert OrderStatus.PENDING.can_transition_to(OrderStatus.CONFIRMED)
        assert not OrderStatus.PENDING.can_transition_to(OrderStatus.READY)
        assert OrderStatus.PREPARING.can_transition_to(OrderStatus.CANCELLED)
        assert not OrderStatus.COMPLETED.can_transition_to(OrderStatus.CANCELLED)


class TestCreate:
    async def test_phase_order_and_result(self, flaky_store, tables, restaurant):
        table = await tables.create_table(TableCreate(restaurant_id=restaurant["id"], table_number=7))
        store = flaky_store()
        orders = OrderLifecycleManager(store)

        order = await orders.create_order(_order(restaurant, table.id), created_by="owner-1")

        writes = [c for c in store.calls if c[0] == "insert" or c[0] == "insert_one"]
        assert writes == [("insert_one", "orders"), ("insert", "order_items"), ("insert", "order_item_addons")]
        assert order.order_number.startswith("ORD") and len(order.order_number) == 9
        assert order.table_number == 7
        assert order.total_amount == Decimal("11.75")
        assert order.created_by == "owner-1"
        assert [len(i.addons) for i in order.items] == [1, 0]

    async def test_explicit_total_kept(self, orders, restaurant):
        order = await orders.create_order(_order(restaurant, total_amount=Decimal("10.00")))
        assert order.total_amount == Decimal("10.00")

    async def test_requires_items(self, orders, restaurant):
        with pytest.raises(ValidationFailure):
            await orders.create_order(OrderCreate(restaurant_id=restaurant["id"]))

    async def test_foreign_table_rejected(self, orders, tables, restaurant, other_restaurant):
        table = await tables.create_table(TableCreate(restaurant_id=other_restaurant["id"], table_number=1))
        with pytest.raises(NotFound):
            await orders.create_order(_order(restaurant, table.id))

    async def test_item_failure_leaves_order_row(self, store, flaky_store, restaurant):
        broken = OrderLifecycleManager(
            flaky_store(("insert", "order_items"), StoreUnavailable("order_items", "insert"))
        )

        with pytest.raises(PartialOrderCreation) as exc:
            await broken.create_order(_order(restaurant))

        failure = exc.value
        assert failure.phase == "order_items"
        assert failure.order_id
        assert isinstance(failure.__cause__, StoreUnavailable)
        row = await store.select_one("orders", {"id": failure.order_id})
        assert row["restaurant_id"] == restaurant["id"]
        assert await store.count("order_items", {"order_id": failure.order_id}) == 0

    async def test_first_phase_failure_is_not_partial(self, flaky_store, restaurant):
        broken = OrderLifecycleManager(flaky_store(("insert_one", "orders"), StoreUnavailable("orders", "insert")))
        with pytest.raises(StoreUnavailable):
            await broken.create_order(_order(restaurant))


class TestRead:
    async def test_list_newest_first(self, orders, tables, restaurant, other_restaurant):
        table = await tables.create_table(TableCreate(restaurant_id=restaurant["id"], table_number=3))
        first = await orders.create_order(_order(restaurant, table.id))
        await asyncio.sleep(0.01)
        second = await orders.create_order(_order(restaurant))
        await orders.create_order(_order(other_restaurant))

        listed = await orders.list_orders(restaurant["id"])
        assert [o.id for o in listed] == [second.id, first.id]
        assert listed[1].table_number == 3
        assert listed[0].table_number is None
        assert listed[1].items[0].addons[0].addon_name == "Oat milk"

    async def test_list_empty(self, orders, restaurant):
        assert await orders.list_orders(restaurant["id"]) == []

    async def test_get_missing(self, orders):
        with pytest.raises(NotFound):
            await orders.get_order("missing")


class TestStatus:
    async def test_any_status_by_default(self, orders, restaurant):
        order = await orders.create_order(_order(restaurant))
        updated = await orders.update_order_status(order.id, "ready")
        assert updated.status is OrderStatus.READY

    async def test_strict_follows_flow(self, orders, restaurant):
        order = await orders.create_order(_order(restaurant))
        updated = await orders.update_order_status(order.id, OrderStatus.CONFIRMED, strict=True)
        assert updated.status is OrderStatus.CONFIRMED

        with pytest.raises(ValidationFailure):
            await orders.update_order_status(order.id, OrderStatus.COMPLETED, strict=True)

    async def test_unknown_status(self, orders, restaurant):
        order = await orders.create_order(_order(restaurant))
        with pytest.raises(ValidationFailure):
            await orders.update_order_status(order.id, "eaten")

    async def test_missing_order(self, orders):
        with pytest.raises(NotFound):
            await orders.update_order_status("missing", OrderStatus.READY)


class TestDelete:
    async def test_children_first(self, store, flaky_store, restaurant):
        created = await OrderLifecycleManager(store).create_order(_order(restaurant))
        recording = flaky_store()

        deletion = await OrderLifecycleManager(recording).delete_order(created.id)

        deletes = [table for method, table in recording.calls if method == "delete"]
        assert deletes == ["order_item_addons", "order_items", "orders"]
        assert deletion.removed == {"order_item_addons": 1, "order_items": 2, "orders": 1}
        assert list(deletion.removed) == ["order_item_addons", "order_items", "orders"]
        assert deletion.order.id == created.id

    async def test_second_delete_not_found(self, orders, restaurant):
        created = await orders.create_order(_order(restaurant))
        await orders.delete_order(created.id)
        with pytest.raises(NotFound):
            await orders.delete_order(created.id)

    async def test_partial_delete(self, store, flaky_store, restaurant):
        created = await OrderLifecycleManager(store).create_order(_order(restaurant))
        broken = OrderLifecycleManager(flaky_store(("delete", "order_items"), StoreUnavailable("order_items", "delete")))

        with pytest.raises(OrderDeletionFailure) as exc:
            await broken.delete_order(created.id)
        assert exc.value.phase == "order_items"
        assert await store.count("order_item_addons") == 0
        assert await store.count("order_items", {"order_id": created.id}) == 2


class TestSubscribe:
    async def test_only_own_restaurant(self, orders, restaurant, other_restaurant):
        seen = []
        sub = orders.subscribe(restaurant["id"], seen.append)

        mine = await orders.create_order(_order(restaurant))
        await orders.create_order(_order(other_restaurant))
        await orders.update_order_status(mine.id, OrderStatus.CONFIRMED)
        await sub.join()

        assert [(e.type, e.record["id"]) for e in seen] == [
            (ChangeType.INSERT, mine.id),
            (ChangeType.UPDATE, mine.id),
        ]
        sub.unsubscribe()
        await sub.wait_closed()

    async def test_no_feed(self, engine):
        from app.store.row_store import RowStore

        with pytest.raises(RuntimeError):
            OrderLifecycleManager(RowStore(engine)).subscribe("r", print)
