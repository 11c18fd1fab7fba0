from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from sqlalchemy.orm import Session

from qrorder.core.exceptions import NotFoundError
from qrorder.models import Notification, NotificationAudience
from qrorder.repository import notification_repository


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def list_notifications(
        self,
        store_id: int,
        audience: NotificationAudience = NotificationAudience.ADMIN,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Notification]:
        return notification_repository.list_notifications(
            self.db, store_id, audience, limit=limit, offset=offset
        )

    def unread_count(
        self, store_id: int, audience: NotificationAudience = NotificationAudience.ADMIN
    ) -> int:
        return notification_repository.count_unread(self.db, store_id, audience)

    def mark_as_read(self, notification_id: int) -> Notification:
        notification = notification_repository.get_notification(self.db, notification_id)
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        notification.mark_as_read(datetime.now(timezone.utc))
        self.db.commit()
        self.db.refresh(notification)
        return notification


__all__ = ["NotificationService"]
