"""SQLAlchemy models for the QR order service."""
from qrorder.models.catalog import Menu, Seat, Store
from qrorder.models.notification import Notification, NotificationAudience, NotificationType
from qrorder.models.order import (
    ORDER_NUMBER_CONSTRAINT,
    Order,
    OrderItem,
    OrderPaymentStatus,
    OrderStatus,
)
from qrorder.models.payment import PAYMENT_ORDER_LINK_CONSTRAINT, GatewayPaymentStatus, Payment

__all__ = [
    "Menu",
    "Seat",
    "Store",
    "Notification",
    "NotificationAudience",
    "NotificationType",
    "Order",
    "OrderItem",
    "OrderPaymentStatus",
    "OrderStatus",
    "GatewayPaymentStatus",
    "Payment",
    "ORDER_NUMBER_CONSTRAINT",
    "PAYMENT_ORDER_LINK_CONSTRAINT",
]
