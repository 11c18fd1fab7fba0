"""API routes for notification history."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from qrorder.dependencies import get_db
from qrorder.models import NotificationAudience
from qrorder.schemas import NotificationResponse, UnreadCountResponse
from qrorder.services import NotificationService

router = APIRouter(tags=["notifications"])


@router.get("/stores/{store_id}/notifications", response_model=List[NotificationResponse])
def list_notifications(
    store_id: int,
    audience: NotificationAudience = NotificationAudience.ADMIN,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    service = NotificationService(db)
    return service.list_notifications(store_id, audience, limit=limit, offset=offset)


@router.get("/stores/{store_id}/notifications/unread-count", response_model=UnreadCountResponse)
def unread_count(
    store_id: int,
    audience: NotificationAudience = NotificationAudience.ADMIN,
    db: Session = Depends(get_db),
):
    service = NotificationService(db)
    return UnreadCountResponse(count=service.unread_count(store_id, audience))


@router.patch("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(notification_id: int, db: Session = Depends(get_db)):
    service = NotificationService(db)
    return service.mark_as_read(notification_id)


__all__ = ["router"]
