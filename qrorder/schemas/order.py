from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from qrorder.models import OrderPaymentStatus, OrderStatus

from .common import Amount, CamelModel


class OrderItemResponse(CamelModel):
    id: int
    menu_id: int
    menu_name: str
    quantity: int
    unit_price: Amount
    total_price: Amount
    options: List[str] = []


class OrderResponse(CamelModel):
    id: int
    order_number: str
    store_id: int
    seat_id: int
    seat_number: Optional[str] = None
    total_amount: Amount
    status: OrderStatus
    payment_status: OrderPaymentStatus
    customer_request: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    can_cancel: bool
    is_paid: bool
    items: List[OrderItemResponse] = []
    created_at: datetime
    updated_at: datetime


class OrderWithTokenResponse(OrderResponse):
    """Returned only to the paying customer, who needs the token for later lookups."""

    access_token: str


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


__all__ = [
    "OrderItemResponse",
    "OrderResponse",
    "OrderWithTokenResponse",
    "OrderStatusUpdate",
]
