"""Database models."""

from trigger_router.models.order import Order, OrderStatus

__all__ = [
    "Order",
    "OrderStatus",
]
