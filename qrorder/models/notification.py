"""SQLAlchemy model for order lifecycle notifications."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from qrorder.core.database import Base
from qrorder.models.types import IdentityKey


class NotificationAudience(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


class NotificationType(str, enum.Enum):
    ORDER_RECEIVED = "ORDER_RECEIVED"
    ORDER_COMPLETED = "ORDER_COMPLETED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    PAYMENT_COMPLETED = "PAYMENT_COMPLETED"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(IdentityKey, primary_key=True, autoincrement=True)
    order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    store_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    audience: Mapped[NotificationAudience] = mapped_column(
        "user_type", Enum(NotificationAudience, native_enum=False, length=20), nullable=False
    )
    notification_type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, native_enum=False, length=30), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def mark_as_read(self, now: datetime) -> None:
        if not self.is_read:
            self.is_read = True
            self.read_at = now


__all__ = ["Notification", "NotificationAudience", "NotificationType"]
