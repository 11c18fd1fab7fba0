"""Persistence of payment intents and their gateway outcome."""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from qrorder.core.config import settings
from qrorder.core.exceptions import DuplicateIdError, NotFoundError, PaymentStateError
from qrorder.models import GatewayPaymentStatus, Payment
from qrorder.repository import payment_repository
from qrorder.services.gateway_client import GatewayResult, split_vat

logger = logging.getLogger(__name__)


def generate_merchant_order_id(now_millis: Optional[int] = None) -> str:
    millis = now_millis if now_millis is not None else int(time.time() * 1000)
    return f"order_{millis}_{secrets.token_hex(4)}"


class PaymentLedger:
    def __init__(self, db: Session):
        self.db = db

    def create_pending(
        self,
        amount: Decimal,
        order_name: str,
        cart_metadata: Dict[str, Any],
        *,
        merchant_order_id: Optional[str] = None,
    ) -> Payment:
        now = datetime.now(timezone.utc)
        supplied, vat = split_vat(amount)
        payment = Payment(
            merchant_order_id=merchant_order_id or generate_merchant_order_id(),
            order_name=order_name,
            status=GatewayPaymentStatus.READY,
            total_amount=amount,
            balance_amount=amount,
            supplied_amount=supplied,
            vat=vat,
            currency=settings.CURRENCY,
            cart_metadata=cart_metadata,
            requested_at=now,
            created_at=now,
            updated_at=now,
        )
        try:
            payment_repository.create_payment(self.db, payment)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateIdError(
                f"Merchant order id {payment.merchant_order_id} already exists"
            ) from exc
        self.db.refresh(payment)
        logger.info(
            "Created pending payment %s for amount %s", payment.merchant_order_id, amount
        )
        return payment

    def find_by_merchant_order_id(self, merchant_order_id: str) -> Payment:
        payment = payment_repository.get_by_merchant_order_id(self.db, merchant_order_id)
        if not payment:
            raise NotFoundError(f"Payment {merchant_order_id} not found")
        return payment

    def find_by_gateway_payment_key(self, payment_key: str) -> Payment:
        payment = payment_repository.get_by_payment_key(self.db, payment_key)
        if not payment:
            raise NotFoundError(f"Payment with key {payment_key} not found")
        return payment

    def apply_confirmation(self, payment: Payment, result: GatewayResult) -> bool:
        """Record the gateway outcome unless another request already did.

        Returns ``False`` when the payment had left READY in the meantime; in
        that case nothing is written.
        """
        now = datetime.now(timezone.utc)
        try:
            updated = payment_repository.update_if_ready(
                self.db,
                payment.id,
                {
                    Payment.status: result.status,
                    Payment.payment_key: result.payment_key,
                    Payment.method: result.method,
                    Payment.total_amount: result.total_amount,
                    Payment.balance_amount: result.balance_amount,
                    Payment.supplied_amount: result.supplied_amount,
                    Payment.vat: result.vat,
                    Payment.approved_at: result.approved_at or now,
                    Payment.updated_at: now,
                },
            )
        except IntegrityError as exc:
            self.db.rollback()
            logger.error(
                "Payment key %s is already recorded for another payment (%s)",
                result.payment_key,
                payment.merchant_order_id,
            )
            raise PaymentStateError(
                f"Payment key {result.payment_key} is already used by another payment",
                code="DUPLICATE_PAYMENT_KEY",
            ) from exc
        if updated == 0:
            self.db.rollback()
            self.db.refresh(payment)
            logger.warning(
                "Payment %s was confirmed concurrently (status %s)",
                payment.merchant_order_id,
                payment.status,
            )
            return False

        self.db.commit()
        self.db.refresh(payment)
        logger.info(
            "Recorded gateway status %s for payment %s", payment.status, payment.merchant_order_id
        )
        return True

    def confirmation_snapshot(self, payment: Payment) -> GatewayResult:
        return GatewayResult(
            payment_key=payment.payment_key or "",
            merchant_order_id=payment.merchant_order_id,
            order_name=payment.order_name,
            status=payment.status,
            method=payment.method or "",
            total_amount=payment.total_amount,
            balance_amount=payment.balance_amount,
            supplied_amount=payment.supplied_amount,
            vat=payment.vat,
            approved_at=payment.approved_at,
        )

    def apply_cancellation(self, payment: Payment, result: GatewayResult, reason: str) -> Payment:
        now = datetime.now(timezone.utc)
        if result.status in GatewayPaymentStatus.CANCELED_STATES:
            payment.status = result.status
        else:
            payment.status = GatewayPaymentStatus.CANCELED
        payment.cancel_reason = reason
        payment.balance_amount = Decimal("0")
        payment.canceled_at = now
        payment.updated_at = now
        self.db.commit()
        self.db.refresh(payment)
        logger.info("Payment %s canceled: %s", payment.merchant_order_id, reason)
        return payment


__all__ = ["PaymentLedger", "generate_merchant_order_id"]
