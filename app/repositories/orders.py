"""
Order lifecycle over the row store.

Orders span three tables (orders -> order_items -> order_item_addons) and the
store offers neither transactions nor cascades, so:

- creation writes parents before children, and a failure after the order row
  exists surfaces ``PartialOrderCreation`` with the persisted order id;
- deletion removes children before parents, one phase at a time, and reports
  the phase that failed via ``OrderDeletionFailure``.

No phase is retried or compensated; that is the caller's decision.
"""
import asyncio
import logging
import time
import uuid
from decimal import Decimal
from functools import partial
from typing import Dict, List, Optional

from app.core.errors import NotFound, OrderDeletionFailure, PartialOrderCreation, ValidationFailure
from app.core.saga import Saga
from app.models.order import OrderStatus
from app.schemas.order import OrderCreate, OrderDeletion, OrderItemAddOnRead, OrderItemRead, OrderRead
from app.store.changes import ChangeFeed, ChangeHandler, Subscription
from app.store.row_store import RowStore

log = logging.getLogger(__name__)

ORDERS = "orders"
ORDER_ITEMS = "order_items"
ORDER_ITEM_ADDONS = "order_item_addons"
TABLES = "tables"

CENT = Decimal("0.01")


def generate_order_number(now_ms: Optional[int] = None) -> str:
    """Display number: 'ORD' + the last six digits of epoch milliseconds. Not globally unique."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"ORD{now_ms % 1_000_000:06d}"


def order_total(order: OrderCreate) -> Decimal:
    total = Decimal("0")
    for item in order.items:
        total += item.item_price * item.quantity
        total += sum((a.addon_price * a.quantity for a in item.addons), Decimal("0"))
    return total.quantize(CENT)


class OrderLifecycleManager:
    def __init__(self, store: RowStore, feed: Optional[ChangeFeed] = None):
        self.store = store
        self.feed = feed if feed is not None else store.feed

    # ---------- Reads ----------

    async def list_orders(self, restaurant_id: str) -> List[OrderRead]:
        """Newest first, with items, item add-ons and table numbers, composed without joins."""
        orders = await self.store.select(ORDERS, {"restaurant_id": restaurant_id}, order_by="created_at", descending=True)
        if not orders:
            return []
        return await self._compose(orders, restaurant_id)

    async def get_order(self, order_id: str) -> OrderRead:
        order = await self.store.select_one(ORDERS, {"id": order_id})
        return (await self._compose([order], order["restaurant_id"]))[0]

    # ---------- Create ----------

    async def create_order(self, order: OrderCreate, *, created_by: Optional[str] = None) -> OrderRead:
        if not order.restaurant_id:
            raise ValidationFailure("restaurant_id is required", field="restaurant_id")
        if not order.items:
            raise ValidationFailure("An order needs at least one item", field="items")

        table_number = None
        if order.table_id:
            table = await self.store.select_one(TABLES, {"id": order.table_id})
            if table["restaurant_id"] != order.restaurant_id:
                raise NotFound("table", order.table_id)
            table_number = table["table_number"]

        order_id = str(uuid.uuid4())
        order_row = {
            "id": order_id,
            "restaurant_id": order.restaurant_id,
            "table_id": order.table_id,
            "order_number": generate_order_number(),
            "order_type": order.order_type.value,
            "status": order.status.value,
            "customer_notes": order.customer_notes,
            "total_amount": order.total_amount if order.total_amount is not None else order_total(order),
            "created_by": created_by,
        }
        item_rows = []
        addon_rows = []
        for item in order.items:
            item_id = str(uuid.uuid4())
            item_rows.append({
                "id": item_id,
                "order_id": order_id,
                "menu_item_id": item.menu_item_id,
                "item_name": item.item_name,
                "item_price": item.item_price,
                "quantity": item.quantity,
                "special_instructions": item.special_instructions,
            })
            for addon in item.addons:
                addon_rows.append({
                    "id": str(uuid.uuid4()),
                    "order_item_id": item_id,
                    "addon_name": addon.addon_name,
                    "addon_price": addon.addon_price,
                    "quantity": addon.quantity,
                })

        saga = Saga("create_order", PartialOrderCreation)
        written = await saga.run("order", partial(self.store.insert_one, ORDERS, order_row))
        items = await saga.run("order_items", partial(self.store.insert, ORDER_ITEMS, item_rows))
        addons = await saga.run("order_item_addons", partial(self.store.insert, ORDER_ITEM_ADDONS, addon_rows))

        log.info(
            "order created: restaurant=%s order=%s number=%s items=%s addons=%s",
            written["restaurant_id"], written["id"], written["order_number"], len(items), len(addons),
        )
        return self._build(written, items, addons, table_number)

    # ---------- Status ----------

    async def update_order_status(self, order_id: str, status, *, strict: bool = False) -> OrderRead:
        """
        Plain field update. With ``strict`` the current status is read first
        and only forward steps (or cancelling a live order) are accepted.
        """
        try:
            status = OrderStatus(status)
        except ValueError:
            raise ValidationFailure(f"Unknown order status {status!r}", field="status") from None

        if strict:
            current = OrderStatus((await self.store.select_one(ORDERS, {"id": order_id}, columns=["status"]))["status"])
            if not current.can_transition_to(status):
                raise ValidationFailure(
                    f"Order cannot move from {current.value} to {status.value}", field="status"
                )

        rows = await self.store.update(ORDERS, {"status": status.value}, {"id": order_id})
        if not rows:
            raise NotFound("order", order_id)
        log.info("order status: order=%s status=%s", order_id, status.value)
        return OrderRead(**rows[0])

    # ---------- Delete ----------

    async def delete_order(self, order_id: str) -> OrderDeletion:
        """
        Ordered cascade: look up the order, look up its item ids, delete the
        item add-ons, then the items, then the order. Each phase waits for the
        previous one; a failure leaves earlier phases in place.
        """
        saga = Saga("delete_order", OrderDeletionFailure)
        order = await saga.run("order_lookup", partial(self.store.select_one, ORDERS, {"id": order_id}))
        items = await saga.run(
            "order_items_lookup",
            partial(self.store.select, ORDER_ITEMS, {"order_id": order_id}, columns=["id"]),
        )
        item_ids = [i["id"] for i in items]

        removed: Dict[str, int] = {}
        if item_ids:
            rows = await saga.run(ORDER_ITEM_ADDONS, partial(self.store.delete, ORDER_ITEM_ADDONS, {"order_item_id": item_ids}))
            removed[ORDER_ITEM_ADDONS] = len(rows)
            rows = await saga.run(ORDER_ITEMS, partial(self.store.delete, ORDER_ITEMS, {"order_id": order_id}))
            removed[ORDER_ITEMS] = len(rows)
        else:
            removed[ORDER_ITEM_ADDONS] = 0
            removed[ORDER_ITEMS] = 0
        rows = await saga.run(ORDERS, partial(self.store.delete, ORDERS, {"id": order_id}))
        removed[ORDERS] = len(rows)

        log.info("order deleted: order=%s number=%s removed=%s", order_id, order["order_number"], removed)
        return OrderDeletion(order=OrderRead(**order), removed=removed)

    # ---------- Live feed ----------

    def subscribe(self, restaurant_id: str, on_change: ChangeHandler) -> Subscription:
        """
        Deliver every insert/update/delete on this restaurant's orders to
        ``on_change``. Events may repeat or arrive out of order across rows,
        and nothing missed while unsubscribed is replayed.
        """
        if self.feed is None:
            raise RuntimeError("No change feed configured for order subscriptions")
        return self.feed.subscribe(ORDERS, {"restaurant_id": restaurant_id}, on_change)

    # ---------- internals ----------

    async def _compose(self, orders: List[dict], restaurant_id: str) -> List[OrderRead]:
        order_ids = [o["id"] for o in orders]
        items, tables = await asyncio.gather(
            self.store.select(ORDER_ITEMS, {"order_id": order_ids}),
            self.store.select(TABLES, {"restaurant_id": restaurant_id}, columns=["id", "table_number"]),
        )
        item_ids = [i["id"] for i in items]
        addons = await self.store.select(ORDER_ITEM_ADDONS, {"order_item_id": item_ids}) if item_ids else []

        table_numbers = {t["id"]: t["table_number"] for t in tables}
        items_by_order: Dict[str, list] = {}
        for item in items:
            items_by_order.setdefault(item["order_id"], []).append(item)
        return [
            self._build(o, items_by_order.get(o["id"], []), addons, table_numbers.get(o["table_id"]))
            for o in orders
        ]

    @staticmethod
    def _build(order: dict, items: List[dict], addons: List[dict], table_number: Optional[int]) -> OrderRead:
        addons_by_item: Dict[str, list] = {}
        for addon in addons:
            addons_by_item.setdefault(addon["order_item_id"], []).append(OrderItemAddOnRead(**addon))
        return OrderRead(
            **order,
            table_number=table_number,
            items=[OrderItemRead(**i, addons=addons_by_item.get(i["id"], [])) for i in items],
        )
