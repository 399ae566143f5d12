import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from app.api.deps import get_orders, get_store
from app.auth.dependencies import CurrentUser, get_current_user, user_from_token
from app.core.errors import NotFound, StoreUnavailable
from app.repositories.orders import OrderLifecycleManager
from app.schemas.order import OrderCreate, OrderDeletion, OrderRead, OrderStatusUpdate
from app.store.changes import ChangeEvent
from app.store.row_store import RowStore

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


async def _own_order(orders: OrderLifecycleManager, order_id: str, user: CurrentUser) -> OrderRead:
    order = await orders.get_order(order_id)
    if order.restaurant_id != user.restaurant_id:
        raise NotFound("order", order_id)
    return order


@router.get("", response_model=List[OrderRead])
async def list_orders(
    orders: OrderLifecycleManager = Depends(get_orders),
    user: CurrentUser = Depends(get_current_user),
):
    return await orders.list_orders(user.restaurant_id)


@router.post("", response_model=OrderRead, status_code=201)
async def create_order(
    payload: OrderCreate,
    orders: OrderLifecycleManager = Depends(get_orders),
    user: CurrentUser = Depends(get_current_user),
):
    payload = payload.model_copy(update={"restaurant_id": user.restaurant_id})
    return await orders.create_order(payload, created_by=user.id)


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: str,
    orders: OrderLifecycleManager = Depends(get_orders),
    user: CurrentUser = Depends(get_current_user),
):
    return await _own_order(orders, order_id, user)


@router.patch("/{order_id}/status", response_model=OrderRead)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    orders: OrderLifecycleManager = Depends(get_orders),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_order(orders, order_id, user)
    return await orders.update_order_status(order_id, payload.status, strict=payload.strict)


@router.delete("/{order_id}", response_model=OrderDeletion)
async def delete_order(
    order_id: str,
    orders: OrderLifecycleManager = Depends(get_orders),
    user: CurrentUser = Depends(get_current_user),
):
    await _own_order(orders, order_id, user)
    return await orders.delete_order(order_id)


@router.websocket("/feed")
async def order_feed(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    store: RowStore = Depends(get_store),
):
    """
    Streams change events for the caller's orders as JSON until the client
    disconnects. The bearer token comes in the ``token`` query parameter.
    """
    try:
        user = await user_from_token(token, store)
    except HTTPException as exc:
        await websocket.close(code=4401 if exc.status_code == 401 else 4404)
        return
    except StoreUnavailable as exc:
        log.warning("order feed refused: %s", exc)
        await websocket.close(code=1011)
        return

    await websocket.accept()
    outbox: asyncio.Queue = asyncio.Queue()

    def forward(event: ChangeEvent) -> None:
        outbox.put_nowait(jsonable_encoder(event.to_dict()))

    subscription = get_orders(store).subscribe(user.restaurant_id, forward)
    receiver = asyncio.create_task(websocket.receive_text())
    try:
        while True:
            sender = asyncio.create_task(outbox.get())
            done, _ = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if sender in done:
                await websocket.send_json(sender.result())
            else:
                sender.cancel()
            if receiver in done:
                receiver.result()  # raises WebSocketDisconnect once the client leaves
                receiver = asyncio.create_task(websocket.receive_text())
    except WebSocketDisconnect:
        log.info("order feed closed: restaurant=%s", user.restaurant_id)
    finally:
        subscription.unsubscribe()
        receiver.cancel()
