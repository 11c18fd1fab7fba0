from .common import Amount, CamelModel
from .notification import NotificationResponse, UnreadCountResponse
from .order import OrderItemResponse, OrderResponse, OrderStatusUpdate, OrderWithTokenResponse
from .payment import (
    CartItem,
    CartPaymentRequest,
    CartSnapshot,
    PaymentCancelRequest,
    PaymentConfigResponse,
    PaymentConfirmRequest,
    PaymentHandle,
    PaymentResponse,
)

__all__ = [
    "Amount",
    "CamelModel",
    "NotificationResponse",
    "UnreadCountResponse",
    "OrderItemResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "OrderWithTokenResponse",
    "CartItem",
    "CartPaymentRequest",
    "CartSnapshot",
    "PaymentCancelRequest",
    "PaymentConfigResponse",
    "PaymentConfirmRequest",
    "PaymentHandle",
    "PaymentResponse",
]
