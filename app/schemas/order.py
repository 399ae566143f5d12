from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal

from app.models.order import OrderStatus, OrderType


# ---------- Incoming ----------
class OrderItemAddOnIn(BaseModel):
    addon_name: str
    addon_price: Decimal = Field(Decimal("0"), ge=0)
    quantity: int = Field(1, ge=1)


class OrderItemIn(BaseModel):
    menu_item_id: Optional[str] = None
    item_name: Optional[str] = None
    item_price: Decimal = Field(..., ge=0)  # captured at order time
    quantity: int = Field(1, ge=1)
    special_instructions: Optional[str] = None
    addons: List[OrderItemAddOnIn] = []


class OrderCreate(BaseModel):
    restaurant_id: Optional[str] = None
    table_id: Optional[str] = None
    order_type: OrderType = OrderType.DINE_IN
    customer_notes: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Optional[Decimal] = Field(None, ge=0)  # computed from items when omitted
    items: List[OrderItemIn] = []


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    strict: bool = False


# ---------- Outgoing ----------
class OrderItemAddOnRead(BaseModel):
    id: str
    order_item_id: str
    addon_name: str
    addon_price: Decimal
    quantity: int


class OrderItemRead(BaseModel):
    id: str
    order_id: str
    menu_item_id: Optional[str] = None
    item_name: Optional[str] = None
    item_price: Decimal
    quantity: int
    special_instructions: Optional[str] = None
    addons: List[OrderItemAddOnRead] = []


class OrderRead(BaseModel):
    id: str
    restaurant_id: str
    table_id: Optional[str] = None
    table_number: Optional[int] = None
    order_number: str
    order_type: OrderType
    status: OrderStatus
    customer_notes: Optional[str] = None
    total_amount: Decimal
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemRead] = []


class OrderDeletion(BaseModel):
    order: OrderRead
    # rows removed per phase, in execution order
    removed: Dict[str, int]
