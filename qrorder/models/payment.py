"""SQLAlchemy model for gateway payments."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from qrorder.core.database import Base
from qrorder.models.types import IdentityKey

PAYMENT_ORDER_LINK_CONSTRAINT = "uq_payments_order_id"


class GatewayPaymentStatus:
    """Status strings defined by the payment gateway."""

    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_FOR_DEPOSIT = "WAITING_FOR_DEPOSIT"
    DONE = "DONE"
    CANCELED = "CANCELED"
    PARTIAL_CANCELED = "PARTIAL_CANCELED"
    ABORTED = "ABORTED"
    EXPIRED = "EXPIRED"

    CANCELED_STATES = frozenset({CANCELED, PARTIAL_CANCELED})


class Payment(Base):
    """A payment intent created at prepare time and settled by the gateway."""

    __tablename__ = "payments"
    __table_args__ = (UniqueConstraint("order_id", name=PAYMENT_ORDER_LINK_CONSTRAINT),)

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    merchant_order_id: Mapped[str] = mapped_column(
        "order_id_toss", String(64), unique=True, nullable=False, index=True
    )
    payment_key: Mapped[Optional[str]] = mapped_column(String(200), unique=True, nullable=True)
    order_name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GatewayPaymentStatus.READY
    )
    method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 0), nullable=False)
    balance_amount: Mapped[Decimal] = mapped_column(Numeric(10, 0), nullable=False)
    supplied_amount: Mapped[Decimal] = mapped_column(Numeric(10, 0), nullable=False)
    vat: Mapped[Decimal] = mapped_column(Numeric(10, 0), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KRW")

    cart_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False)
    order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("orders.id"), nullable=True
    )
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @property
    def is_ready(self) -> bool:
        return self.status == GatewayPaymentStatus.READY

    @property
    def is_confirmed(self) -> bool:
        return self.status == GatewayPaymentStatus.DONE

    @property
    def is_canceled(self) -> bool:
        return self.status in GatewayPaymentStatus.CANCELED_STATES

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return (
            "Payment(id={id}, merchant_order_id={moid!r}, status={status}, amount={amount})"
        ).format(
            id=self.id,
            moid=self.merchant_order_id,
            status=self.status,
            amount=self.total_amount,
        )


__all__ = ["Payment", "GatewayPaymentStatus", "PAYMENT_ORDER_LINK_CONSTRAINT"]
