"""Database helpers for payment persistence."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from qrorder.models import GatewayPaymentStatus, Payment


def get_by_merchant_order_id(db: Session, merchant_order_id: str) -> Optional[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.merchant_order_id == merchant_order_id)
        .first()
    )


def get_by_payment_key(db: Session, payment_key: str) -> Optional[Payment]:
    return db.query(Payment).filter(Payment.payment_key == payment_key).first()


def create_payment(db: Session, payment: Payment) -> Payment:
    db.add(payment)
    db.flush()
    return payment


def update_if_ready(db: Session, payment_id: int, values: Dict[str, Any]) -> int:
    """Apply ``values`` only while the payment is still READY; returns affected rows."""
    return (
        db.query(Payment)
        .filter(
            Payment.id == payment_id,
            Payment.status == GatewayPaymentStatus.READY,
        )
        .update(values, synchronize_session=False)
    )


def link_order(db: Session, payment_id: int, order_id: int, values: Dict[str, Any]) -> int:
    """Attach ``order_id`` unless another order was linked first; returns affected rows."""
    return (
        db.query(Payment)
        .filter(Payment.id == payment_id, Payment.order_id.is_(None))
        .update({Payment.order_id: order_id, **values}, synchronize_session=False)
    )


__all__ = [
    "get_by_merchant_order_id",
    "get_by_payment_key",
    "create_payment",
    "update_if_ready",
    "link_order",
]
