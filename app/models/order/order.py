from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Text, Numeric, Index
from datetime import datetime
from app.models.base import Base
import uuid, enum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    def can_transition_to(self, new: "OrderStatus") -> bool:
        """Forward along the kitchen flow, or cancel from any non-terminal state."""
        if self.is_terminal:
            return False
        if new is OrderStatus.CANCELLED:
            return True
        return new in _FLOW and _FLOW.index(new) == _FLOW.index(self) + 1


_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
]


class OrderType(str, enum.Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String, ForeignKey("restaurants.id"), nullable=False)
    # Plain reference: tables may be deleted while their orders remain.
    # Null for takeaway/delivery.
    table_id = Column(String, nullable=True)

    order_number = Column(String, nullable=False)
    order_type = Column(String, nullable=False, default=OrderType.DINE_IN.value)
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    customer_notes = Column(Text, nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    created_by = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_orders_restaurant_created", "restaurant_id", "created_at"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id = Column(String, ForeignKey("orders.id"), nullable=False)
    # Plain reference: menu items may be edited or deleted after the order
    menu_item_id = Column(String, nullable=True)

    # Snapshot name and price at time of order
    item_name = Column(String, nullable=True)
    item_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    special_instructions = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_order_items_order", "order_id"),
    )


class OrderItemAddOn(Base):
    __tablename__ = "order_item_addons"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    order_item_id = Column(String, ForeignKey("order_items.id"), nullable=False)

    addon_name = Column(String, nullable=False)
    addon_price = Column(Numeric(10, 2), nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("idx_order_item_addons_item", "order_item_id"),
    )
