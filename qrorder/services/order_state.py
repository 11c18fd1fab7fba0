"""Order lifecycle transitions."""

from __future__ import annotations

from qrorder.core.exceptions import IllegalTransitionError
from qrorder.models import Order, OrderPaymentStatus, OrderStatus

_NEXT_STATUS = {
    OrderStatus.PENDING: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.COMPLETED,
    OrderStatus.COMPLETED: OrderStatus.PICKED_UP,
}


def transition(current: OrderStatus, requested: OrderStatus) -> OrderStatus:
    """Validate a single forward step, or a cancellation while still PENDING."""
    if requested == OrderStatus.CANCELLED and current == OrderStatus.PENDING:
        return requested
    if _NEXT_STATUS.get(current) == requested:
        return requested
    raise IllegalTransitionError(current, requested)


def apply(order: Order, requested: OrderStatus) -> Order:
    order.status = transition(order.status, requested)
    if order.status == OrderStatus.CANCELLED:
        order.payment_status = OrderPaymentStatus.CANCELLED
    return order


__all__ = ["transition", "apply"]
