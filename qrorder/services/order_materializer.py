"""Turns a confirmed payment's cart snapshot into a persisted order."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qrorder.core.exceptions import (
    AmountMismatchError,
    DuplicateOrderNumberError,
    InvalidCartError,
    MenuUnavailableError,
    NotFoundError,
)
from qrorder.models import (
    PAYMENT_ORDER_LINK_CONSTRAINT,
    Order,
    OrderItem,
    OrderPaymentStatus,
    OrderStatus,
    Payment,
)
from qrorder.repository import catalog_repository, order_repository, payment_repository
from qrorder.schemas import CartItem, CartSnapshot
from qrorder.services import order_number
from qrorder.services.gateway_client import GatewayResult
from qrorder.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 3


def is_payment_link_conflict(exc: IntegrityError) -> bool:
    """True when ``exc`` comes from the one-order-per-payment constraint."""
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint == PAYMENT_ORDER_LINK_CONSTRAINT
    # SQLite names the columns instead of the constraint.
    return "payments.order_id" in str(exc.orig)


def verify_amount(payment: Payment, result: GatewayResult) -> None:
    if Decimal(payment.total_amount) != result.total_amount:
        raise AmountMismatchError(
            f"Gateway amount {result.total_amount} does not match payment amount "
            f"{payment.total_amount}"
        )


def load_snapshot(payment: Payment) -> CartSnapshot:
    try:
        snapshot = CartSnapshot.model_validate(payment.cart_metadata or {})
    except ValidationError as exc:
        raise InvalidCartError(
            f"Payment {payment.merchant_order_id} carries an unreadable cart"
        ) from exc
    if not snapshot.items:
        raise InvalidCartError(f"Payment {payment.merchant_order_id} has an empty cart")
    return snapshot


def price_items(db: Session, store_id: int, seat_id: int, items: List[CartItem]) -> List[OrderItem]:
    """Validate store, seat and menus and price every line at the current menu price.

    Nothing is written; the returned items are transient.
    """
    store = catalog_repository.get_store(db, store_id)
    if not store:
        raise NotFoundError(f"Store {store_id} not found")
    if not store.is_active:
        raise InvalidCartError(f"Store {store_id} is not accepting orders")

    seat = catalog_repository.get_seat(db, seat_id)
    if not seat or seat.store_id != store_id:
        raise NotFoundError(f"Seat {seat_id} not found in store {store_id}")
    if not seat.is_active:
        raise InvalidCartError(f"Seat {seat_id} is not active")

    menus = catalog_repository.get_menus_by_ids(db, (item.menu_id for item in items))
    now = datetime.now(timezone.utc)
    order_items: List[OrderItem] = []
    for item in items:
        menu = menus.get(item.menu_id)
        if not menu or menu.store_id != store_id:
            raise NotFoundError(f"Menu {item.menu_id} not found")
        if not menu.is_available:
            raise MenuUnavailableError(f"Menu {menu.name} is not available")
        unit_price = Decimal(menu.price)
        order_items.append(
            OrderItem(
                menu_id=menu.id,
                menu_name=menu.name,
                quantity=item.quantity,
                unit_price=unit_price,
                total_price=unit_price * item.quantity,
                options=list(item.options),
                created_at=now,
            )
        )
    return order_items


class OrderMaterializer:
    def __init__(
        self,
        db: Session,
        dispatcher: NotificationDispatcher,
        *,
        number_generator: Callable[[int], str] = order_number.generate,
        token_generator: Callable[[], str] = order_number.generate_access_token,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self._number_generator = number_generator
        self._token_generator = token_generator

    def existing_order(self, payment: Payment) -> Optional[Order]:
        if payment.order_id is None:
            return None
        return order_repository.get_order(self.db, payment.order_id)

    def materialize(self, payment: Payment, result: GatewayResult) -> Order:
        verify_amount(payment, result)

        existing = self.existing_order(payment)
        if existing:
            logger.info(
                "Payment %s already materialized as order %s",
                payment.merchant_order_id,
                existing.order_number,
            )
            return existing

        snapshot = load_snapshot(payment)
        items = price_items(self.db, snapshot.store_id, snapshot.seat_id, snapshot.items)
        items_total = sum((item.total_price for item in items), Decimal("0"))
        if items_total != Decimal(payment.total_amount):
            raise AmountMismatchError(
                f"Cart total {items_total} does not match payment amount {payment.total_amount}"
            )

        for attempt in range(1, MAX_ORDER_NUMBER_ATTEMPTS + 1):
            try:
                order = self._insert(payment, snapshot, items)
                break
            except DuplicateOrderNumberError:
                if attempt == MAX_ORDER_NUMBER_ATTEMPTS:
                    raise
                logger.warning(
                    "Order number collision for payment %s (attempt %s/%s)",
                    payment.merchant_order_id,
                    attempt,
                    MAX_ORDER_NUMBER_ATTEMPTS,
                )
                # The failed flush discarded the transient items; price them again.
                items = price_items(self.db, snapshot.store_id, snapshot.seat_id, snapshot.items)

        if order is None:
            self.db.refresh(payment)
            winner = self.existing_order(payment)
            if winner is None:
                raise NotFoundError(f"Order for payment {payment.merchant_order_id} not found")
            logger.warning(
                "Payment %s was materialized concurrently as order %s",
                payment.merchant_order_id,
                winner.order_number,
            )
            return winner

        logger.info(
            "Created order %s (store %s, seat %s, amount %s) from payment %s",
            order.order_number,
            order.store_id,
            order.seat_id,
            order.total_amount,
            payment.merchant_order_id,
        )
        self.dispatcher.order_received(order)
        self.dispatcher.payment_completed(order)
        return order

    def _insert(
        self, payment: Payment, snapshot: CartSnapshot, items: List[OrderItem]
    ) -> Optional[Order]:
        """Insert the order and link it to the payment in one transaction.

        Returns ``None`` when another request linked the payment first.
        """
        now = datetime.now(timezone.utc)
        order = Order(
            store_id=snapshot.store_id,
            seat_id=snapshot.seat_id,
            order_number=self._number_generator(snapshot.store_id),
            access_token=self._token_generator(),
            total_amount=Decimal(payment.total_amount),
            status=OrderStatus.PENDING,
            payment_status=OrderPaymentStatus.PAID,
            customer_request=snapshot.customer_request,
            customer_name=snapshot.customer_name,
            customer_phone=snapshot.customer_phone,
            created_at=now,
            updated_at=now,
        )
        order.items = items
        try:
            order_repository.create_order(self.db, order)
            linked = payment_repository.link_order(
                self.db, payment.id, order.id, {Payment.updated_at: now}
            )
            if linked == 0:
                self.db.rollback()
                return None
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_payment_link_conflict(exc):
                return None
            raise DuplicateOrderNumberError(
                f"Order number {order.order_number} already exists"
            ) from exc

        self.db.refresh(order)
        self.db.refresh(payment)
        return order


__all__ = [
    "OrderMaterializer",
    "is_payment_link_conflict",
    "load_snapshot",
    "price_items",
    "verify_amount",
]
