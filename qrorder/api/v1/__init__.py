from fastapi import APIRouter

from .notification_routes import router as notification_router
from .order_routes import router as order_router
from .payment_routes import router as payment_router

router = APIRouter()
router.include_router(payment_router)
router.include_router(order_router)
router.include_router(notification_router)

__all__ = ["router", "notification_router", "order_router", "payment_router"]
