from .order import Order, OrderItem, OrderItemAddOn, OrderStatus, OrderType

__all__ = [
    "Order",
    "OrderItem",
    "OrderItemAddOn",
    "OrderStatus",
    "OrderType",
]
