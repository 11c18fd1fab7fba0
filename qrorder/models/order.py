"""SQLAlchemy models for materialized orders."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrorder.core.database import Base
from qrorder.models.types import IdentityKey

if TYPE_CHECKING:
    from qrorder.models.catalog import Seat

ORDER_NUMBER_CONSTRAINT = "uq_orders_order_number"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    COMPLETED = "COMPLETED"
    PICKED_UP = "PICKED_UP"
    CANCELLED = "CANCELLED"


class OrderPaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class Order(Base):
    """A fulfillable order created from a confirmed payment."""

    __tablename__ = "orders"
    __table_args__ = (UniqueConstraint("order_number", name=ORDER_NUMBER_CONSTRAINT),)

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    store_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    seat_id: Mapped[int] = mapped_column(Integer, nullable=False)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False)
    access_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 0), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=20),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    payment_status: Mapped[OrderPaymentStatus] = mapped_column(
        Enum(OrderPaymentStatus, native_enum=False, length=20),
        nullable=False,
        default=OrderPaymentStatus.PENDING,
    )
    customer_request: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )
    seat: Mapped[Optional["Seat"]] = relationship(
        primaryjoin="foreign(Order.seat_id) == Seat.id",
        viewonly=True,
        lazy="selectin",
    )

    @property
    def seat_number(self) -> Optional[str]:
        return self.seat.seat_number if self.seat else None

    @property
    def can_cancel(self) -> bool:
        return self.status == OrderStatus.PENDING

    @property
    def is_paid(self) -> bool:
        return self.payment_status == OrderPaymentStatus.PAID

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return (
            f"<Order(id={self.id}, order_number={self.order_number}, "
            f"status={self.status}, total_amount={self.total_amount})>"
        )


class OrderItem(Base):
    """A line of an order with the menu price copied at materialization time."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    menu_id: Mapped[int] = mapped_column(Integer, nullable=False)
    menu_name: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 0), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 0), nullable=False)
    options: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")


__all__ = ["Order", "OrderItem", "OrderStatus", "OrderPaymentStatus", "ORDER_NUMBER_CONSTRAINT"]
