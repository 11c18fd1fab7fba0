from .gateway_client import GatewayClient, GatewayResult, RetryPolicy
from .notification_dispatcher import HttpPushChannel, NotificationDispatcher, RealtimeChannel
from .notification_service import NotificationService
from .order_materializer import OrderMaterializer
from .order_service import OrderService
from .payment_ledger import PaymentLedger
from .payment_workflow import PaymentWorkflow

__all__ = [
    "GatewayClient",
    "GatewayResult",
    "RetryPolicy",
    "HttpPushChannel",
    "NotificationDispatcher",
    "RealtimeChannel",
    "NotificationService",
    "OrderMaterializer",
    "OrderService",
    "PaymentLedger",
    "PaymentWorkflow",
]
