from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from qrorder.models import Notification, NotificationAudience


def create_notification(db: Session, notification: Notification) -> Notification:
    db.add(notification)
    db.flush()
    return notification


def get_notification(db: Session, notification_id: int) -> Optional[Notification]:
    return db.query(Notification).filter(Notification.id == notification_id).first()


def list_notifications(
    db: Session,
    store_id: int,
    audience: NotificationAudience,
    *,
    limit: int = 20,
    offset: int = 0,
) -> List[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.store_id == store_id, Notification.audience == audience)
        .order_by(Notification.sent_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def count_unread(db: Session, store_id: int, audience: NotificationAudience) -> int:
    return (
        db.query(Notification)
        .filter(
            Notification.store_id == store_id,
            Notification.audience == audience,
            Notification.is_read.is_(False),
        )
        .count()
    )


__all__ = [
    "create_notification",
    "get_notification",
    "list_notifications",
    "count_unread",
]
