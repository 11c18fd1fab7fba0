from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from qrorder.core.exceptions import AccessDeniedError, NotFoundError
from qrorder.models import Order, OrderStatus
from qrorder.repository import order_repository
from qrorder.services import order_state
from qrorder.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def _check_access(order: Order, access_token: str) -> None:
    if not access_token or not secrets.compare_digest(order.access_token, access_token):
        raise AccessDeniedError("Access token does not match this order")


class OrderService:
    def __init__(self, db: Session, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    def _get(self, order_id: int) -> Order:
        order = order_repository.get_order(self.db, order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def get_order(self, order_id: int, access_token: str) -> Order:
        order = self._get(order_id)
        _check_access(order, access_token)
        return order

    def get_order_by_number(self, order_number: str, access_token: str) -> Order:
        order = order_repository.get_order_by_number(self.db, order_number)
        if not order:
            raise NotFoundError(f"Order {order_number} not found")
        _check_access(order, access_token)
        return order

    def cancel_order(self, order_id: int, access_token: str) -> Order:
        order = self.get_order(order_id, access_token)
        order = self._change_status(order, OrderStatus.CANCELLED)
        logger.info("Order %s cancelled by customer", order.order_number)
        return order

    def list_orders(self, store_id: int, status: Optional[OrderStatus] = None) -> List[Order]:
        return order_repository.list_orders_by_store(self.db, store_id, status)

    def get_store_order(self, store_id: int, order_id: int) -> Order:
        order = self._get(order_id)
        if order.store_id != store_id:
            raise NotFoundError(f"Order {order_id} not found in store {store_id}")
        return order

    def update_status(self, store_id: int, order_id: int, new_status: OrderStatus) -> Order:
        order = self.get_store_order(store_id, order_id)
        previous = order.status
        order = self._change_status(order, new_status)
        logger.info(
            "Order %s status changed from %s to %s",
            order.order_number,
            previous.value,
            order.status.value,
        )
        return order

    def _change_status(self, order: Order, new_status: OrderStatus) -> Order:
        order_state.apply(order, new_status)
        order.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(order)

        if order.status == OrderStatus.COMPLETED:
            self.dispatcher.order_completed(order)
        elif order.status == OrderStatus.CANCELLED:
            self.dispatcher.order_cancelled(order)
        return order


__all__ = ["OrderService"]
