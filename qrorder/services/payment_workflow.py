"""Prepare, confirm and cancel payments.

Confirmation reconciles the gateway, which may already have moved money, with
the local ledger and order tables. The merchant order id is the replay key:
whatever happened locally after the gateway said DONE, confirming again with
the same id returns the same order without charging twice.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from qrorder.core.exceptions import (
    AmountMismatchError,
    DuplicateIdError,
    GatewayRejectedError,
    InvalidCartError,
    PaymentNotApprovedError,
    PaymentStateError,
)
from qrorder.models import Order, OrderPaymentStatus, Payment
from qrorder.schemas import CartPaymentRequest, CartSnapshot, PaymentHandle
from qrorder.services.gateway_client import (
    ALREADY_PROCESSED_PAYMENT,
    GatewayClient,
    GatewayResult,
)
from qrorder.services.notification_dispatcher import NotificationDispatcher
from qrorder.services.order_materializer import OrderMaterializer, price_items, verify_amount
from qrorder.services.payment_ledger import PaymentLedger

logger = logging.getLogger(__name__)

MAX_MERCHANT_ID_ATTEMPTS = 3


class PaymentWorkflow:
    def __init__(
        self,
        db: Session,
        gateway: GatewayClient,
        dispatcher: NotificationDispatcher,
        *,
        ledger: Optional[PaymentLedger] = None,
        materializer: Optional[OrderMaterializer] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.ledger = ledger or PaymentLedger(db)
        self.materializer = materializer or OrderMaterializer(db, dispatcher)

    def prepare(self, cart: CartPaymentRequest) -> PaymentHandle:
        if not cart.order_items:
            raise InvalidCartError("Cart must contain at least one item")
        if cart.total_amount <= 0:
            raise InvalidCartError("Total amount must be positive")

        items = price_items(self.db, cart.store_id, cart.seat_id, cart.order_items)
        expected = sum((item.total_price for item in items), Decimal("0"))
        if expected != cart.total_amount:
            raise AmountMismatchError(
                f"Cart total {cart.total_amount} does not match menu prices {expected}"
            )

        metadata = CartSnapshot.from_request(cart).to_metadata()
        for attempt in range(1, MAX_MERCHANT_ID_ATTEMPTS + 1):
            try:
                payment = self.ledger.create_pending(cart.total_amount, cart.order_name, metadata)
                break
            except DuplicateIdError:
                if attempt == MAX_MERCHANT_ID_ATTEMPTS:
                    raise
                logger.warning(
                    "Merchant order id collision (attempt %s/%s); regenerating",
                    attempt,
                    MAX_MERCHANT_ID_ATTEMPTS,
                )

        logger.info(
            "Prepared payment %s for store %s seat %s",
            payment.merchant_order_id,
            cart.store_id,
            cart.seat_id,
        )
        return PaymentHandle(
            merchant_order_id=payment.merchant_order_id,
            order_name=payment.order_name,
            amount=payment.total_amount,
            customer_name=cart.customer_name,
            success_url=cart.success_url,
            fail_url=cart.fail_url,
        )

    def confirm(self, payment_key: str, merchant_order_id: str, amount: Decimal) -> Order:
        payment = self.ledger.find_by_merchant_order_id(merchant_order_id)
        if Decimal(amount) != Decimal(payment.total_amount):
            raise AmountMismatchError(
                f"Requested amount {amount} does not match payment amount {payment.total_amount}"
            )

        existing = self.materializer.existing_order(payment)
        if existing:
            self._check_payment_key(payment, payment_key)
            logger.info(
                "Duplicate confirmation for %s; returning order %s",
                merchant_order_id,
                existing.order_number,
            )
            return existing

        if payment.is_confirmed:
            return self._replay(payment, payment_key)

        if not payment.is_ready:
            raise PaymentStateError(
                f"Payment {merchant_order_id} cannot be confirmed in status {payment.status}"
            )

        try:
            result = self.gateway.confirm(payment_key, merchant_order_id, payment.total_amount)
        except GatewayRejectedError as exc:
            if exc.provider_code != ALREADY_PROCESSED_PAYMENT:
                raise
            self.db.refresh(payment)
            if payment.is_confirmed:
                logger.warning(
                    "Gateway reports %s already processed; replaying from ledger",
                    merchant_order_id,
                )
                return self._replay(payment, payment_key)
            result = self._reconcile(payment_key, merchant_order_id)

        try:
            verify_amount(payment, result)
        except AmountMismatchError:
            logger.error(
                "Gateway amount %s differs from payment %s amount %s",
                result.total_amount,
                merchant_order_id,
                payment.total_amount,
            )
            raise

        if not self.ledger.apply_confirmation(payment, result):
            existing = self.materializer.existing_order(payment)
            if existing:
                self._check_payment_key(payment, payment_key)
                return existing
            if payment.is_confirmed:
                return self._replay(payment, payment_key)
            raise PaymentStateError(
                f"Payment {merchant_order_id} changed to status {payment.status} concurrently"
            )

        if not result.is_done:
            logger.warning(
                "Gateway left payment %s in status %s; no order created",
                merchant_order_id,
                result.status,
            )
            raise PaymentNotApprovedError(
                f"Payment {merchant_order_id} was not approved (status {result.status})"
            )

        logger.info("Payment %s confirmed by gateway", merchant_order_id)
        return self.materializer.materialize(payment, result)

    def cancel(self, payment_key: str, reason: str) -> Payment:
        payment = self.ledger.find_by_gateway_payment_key(payment_key)
        if payment.is_canceled:
            raise PaymentStateError(f"Payment {payment.merchant_order_id} is already canceled")
        if not payment.is_confirmed:
            raise PaymentStateError(
                f"Payment {payment.merchant_order_id} cannot be canceled in status {payment.status}"
            )

        result = self.gateway.cancel(payment_key, payment.balance_amount, reason)
        payment = self.ledger.apply_cancellation(payment, result, reason)

        order = self.materializer.existing_order(payment)
        if order:
            order.payment_status = OrderPaymentStatus.REFUNDED
            order.updated_at = datetime.now(timezone.utc)
            self.db.commit()
            logger.info("Order %s marked refunded", order.order_number)
        return payment

    def get_payment_by_key(self, payment_key: str) -> Payment:
        return self.ledger.find_by_gateway_payment_key(payment_key)

    def get_payment_by_merchant_order_id(self, merchant_order_id: str) -> Payment:
        return self.ledger.find_by_merchant_order_id(merchant_order_id)

    def _reconcile(self, payment_key: str, merchant_order_id: str) -> GatewayResult:
        """Recover a confirmation the gateway applied but whose answer never arrived."""
        logger.warning(
            "Gateway reports %s already processed but the ledger is still READY; looking it up",
            merchant_order_id,
        )
        result = self.gateway.lookup(payment_key)
        if result.merchant_order_id != merchant_order_id:
            raise PaymentStateError(
                f"Payment key does not belong to payment {merchant_order_id}"
            )
        return result

    def _replay(self, payment: Payment, payment_key: str) -> Order:
        self._check_payment_key(payment, payment_key)
        logger.warning("Replaying materialization for payment %s", payment.merchant_order_id)
        return self.materializer.materialize(payment, self.ledger.confirmation_snapshot(payment))

    @staticmethod
    def _check_payment_key(payment: Payment, payment_key: str) -> None:
        if payment.payment_key and payment.payment_key != payment_key:
            raise PaymentStateError(
                f"Payment key does not match confirmed payment {payment.merchant_order_id}"
            )


__all__ = ["PaymentWorkflow"]
