from __future__ import annotations

from datetime import datetime
from typing import Optional

from qrorder.models import NotificationAudience, NotificationType

from .common import CamelModel


class NotificationResponse(CamelModel):
    id: int
    order_id: Optional[int] = None
    store_id: int
    audience: NotificationAudience
    notification_type: NotificationType
    message: str
    is_read: bool
    sent_at: datetime
    read_at: Optional[datetime] = None


class UnreadCountResponse(CamelModel):
    count: int


__all__ = ["NotificationResponse", "UnreadCountResponse"]
