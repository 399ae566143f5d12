"""
HTTP surface: auth, ownership scoping and error mapping.
The order feed handshake is driven directly with a recording socket.
"""
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_store
from app.api.order_routes import order_feed
from app.auth.dependencies import issue_token
from app.core.errors import StoreUnavailable
from app.main import app


@pytest.fixture
async def client_for():
    clients = []

    def make(store, user_id="owner-1"):
        app.dependency_overrides[get_store] = lambda: store
        client = AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Authorization": f"Bearer {issue_token(user_id)}"},
        )
        clients.append(client)
        return client

    yield make
    app.dependency_overrides.clear()
    for client in clients:
        await client.aclose()


@pytest.fixture
def client(client_for, store, restaurant):
    return client_for(store)


async def _menu(client):
    category = (await client.post("/api/categories", json={"name": "Drinks"})).json()
    item = (await client.post("/api/items", json={"category_id": category["id"], "name": "Chai", "price": 3.5})).json()
    return category, item


class TestAuth:
    async def test_missing_token(self, store, restaurant):
        app.dependency_overrides[get_store] = lambda: store
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as anon:
                resp = await anon.get("/api/categories")
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 401

    async def test_bad_token(self, client_for, store, restaurant):
        client = client_for(store)
        resp = await client.get("/api/categories", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    async def test_user_without_restaurant(self, client_for, store, restaurant):
        client = client_for(store, user_id="stranger")
        resp = await client.get("/api/categories")
        assert resp.status_code == 404


class TestMenu:
    async def test_create_and_list(self, client, restaurant):
        category, item = await _menu(client)
        assert category["restaurant_id"] == restaurant["id"]

        resp = await client.put(f"/api/items/{item['id']}/variants", json={"variants": [
            {"name": "Small"}, {"name": "Large", "additional_price": 1.0},
        ]})
        assert resp.status_code == 200
        assert [v["display_order"] for v in resp.json()] == [0, 1]
        assert {v["user_id"] for v in resp.json()} == {"owner-1"}

        items = (await client.get(f"/api/categories/{category['id']}/items")).json()
        assert [v["name"] for v in items[0]["variants"]] == ["Small", "Large"]

    async def test_other_restaurant_item_is_not_found(self, client_for, store, restaurant, other_restaurant):
        _, item = await _menu(client_for(store))
        intruder = client_for(store, user_id="owner-2")
        resp = await intruder.get(f"/api/items/{item['id']}")
        assert resp.status_code == 404

    async def test_delete_category_with_items_refused(self, client):
        category, _ = await _menu(client)
        resp = await client.delete(f"/api/categories/{category['id']}")
        assert resp.status_code == 422
        assert resp.json()["field"] == "category_id"

    async def test_unknown_group_is_validation_failure(self, client):
        _, item = await _menu(client)
        resp = await client.put(f"/api/items/{item['id']}/addon-groups", json={"addon_group_ids": ["missing"]})
        assert resp.status_code == 422

    async def test_group_links(self, client):
        _, item = await _menu(client)
        group = (await client.post("/api/addon-groups", json={"name": "Milk"})).json()
        resp = await client.put(f"/api/items/{item['id']}/addon-groups", json={"addon_group_ids": [group["id"]]})
        assert resp.json() == [group["id"]]
        assert (await client.get(f"/api/items/{item['id']}/addon-groups")).json() == [group["id"]]


class TestOrders:
    async def test_lifecycle(self, client):
        table = (await client.post("/api/tables", json={"table_number": 4})).json()
        resp = await client.post("/api/orders", json={
            "table_id": table["id"],
            "items": [{"item_name": "Chai", "item_price": "3.50", "quantity": 2}],
        })
        assert resp.status_code == 201
        order = resp.json()
        assert order["table_number"] == 4
        assert Decimal(order["total_amount"]) == Decimal("7.00")

        resp = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "ready", "strict": True})
        assert resp.status_code == 422

        resp = await client.delete(f"/api/orders/{order['id']}")
        assert resp.json()["removed"] == {"order_item_addons": 0, "order_items": 1, "orders": 1}
        assert (await client.delete(f"/api/orders/{order['id']}")).status_code == 404

    async def test_partial_creation_is_conflict(self, client_for, flaky_store, store, restaurant):
        client = client_for(flaky_store(("insert", "order_items"), StoreUnavailable("order_items", "insert")))
        resp = await client.post("/api/orders", json={"items": [{"item_name": "Chai", "item_price": "3.50"}]})

        assert resp.status_code == 409
        body = resp.json()
        assert body["phase"] == "order_items"
        assert body["order_id"]
        assert (await store.select_one("orders", {"id": body["order_id"]}))["restaurant_id"] == restaurant["id"]

    async def test_store_outage_is_503(self, client_for, flaky_store, restaurant):
        client = client_for(flaky_store(("select", "tables"), StoreUnavailable("tables", "select")))
        resp = await client.get("/api/tables")
        assert resp.status_code == 503


class RecordingSocket:
    """Just enough of a WebSocket to watch the feed's handshake."""

    def __init__(self):
        self.accepted = False
        self.close_code = None

    async def accept(self):
        self.accepted = True

    async def close(self, code=1000):
        self.close_code = code


class TestOrderFeed:
    async def test_missing_token_closes(self, store, restaurant):
        socket = RecordingSocket()
        await order_feed(socket, token=None, store=store)
        assert socket.close_code == 4401
        assert not socket.accepted

    async def test_store_outage_closes(self, flaky_store, restaurant):
        socket = RecordingSocket()
        store = flaky_store(("select", "restaurants"), StoreUnavailable("restaurants", "select"))
        await order_feed(socket, token=issue_token("owner-1"), store=store)
        assert socket.close_code == 1011
        assert not socket.accepted
