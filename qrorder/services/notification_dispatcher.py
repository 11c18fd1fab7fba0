"""Fire-and-forget delivery of order notifications.

Every notification is stored first and then pushed to the real-time channel.
Delivery runs in its own database session so that a failure here can never
roll back, or be rolled back by, the order transaction that triggered it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol

import httpx
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from qrorder.core.config import settings
from qrorder.models import Notification, NotificationAudience, NotificationType, Order
from qrorder.repository import notification_repository
from qrorder.schemas import NotificationResponse

logger = logging.getLogger(__name__)


class RealtimeChannel(Protocol):
    def push(self, destination: str, message: Dict[str, Any]) -> None:
        ...


class HttpPushChannel:
    """Relays messages to the real-time gateway over HTTP."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        configured_base = base_url if base_url is not None else settings.REALTIME_PUSH_URL
        self._base_url = configured_base.rstrip("/") if configured_base else ""
        self._timeout = timeout or settings.REALTIME_PUSH_TIMEOUT

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    def push(self, destination: str, message: Dict[str, Any]) -> None:
        if not self.is_configured:
            logger.info("Real-time push URL not configured; skipping %s", destination)
            return

        try:
            response = httpx.post(
                self._base_url,
                json={"destination": destination, "payload": message},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Real-time relay returned HTTP %s for %s: %s",
                exc.response.status_code,
                destination,
                exc.response.text,
            )
        except httpx.RequestError as exc:
            logger.warning("Failed to reach real-time relay for %s: %s", destination, exc)


def destination_for(audience: NotificationAudience, store_id: int, order_id: Optional[int]) -> str:
    if audience == NotificationAudience.ADMIN:
        return f"/topic/admin/{store_id}"
    return f"/topic/customer/{order_id}"


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        channel: RealtimeChannel,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> None:
        self._session_factory = session_factory
        self._channel = channel
        self._background_tasks = background_tasks

    def notify(
        self,
        event: NotificationType,
        audience: NotificationAudience,
        *,
        store_id: int,
        order_id: Optional[int],
        message: str,
    ) -> None:
        if self._background_tasks is not None:
            self._background_tasks.add_task(
                self._deliver, event, audience, store_id, order_id, message
            )
            return
        self._deliver(event, audience, store_id, order_id, message)

    def order_received(self, order: Order) -> None:
        self.notify(
            NotificationType.ORDER_RECEIVED,
            NotificationAudience.ADMIN,
            store_id=order.store_id,
            order_id=order.id,
            message=f"New order {order.order_number} received ({order.total_amount} KRW)",
        )

    def payment_completed(self, order: Order) -> None:
        self.notify(
            NotificationType.PAYMENT_COMPLETED,
            NotificationAudience.CUSTOMER,
            store_id=order.store_id,
            order_id=order.id,
            message=f"Payment for order {order.order_number} completed",
        )

    def order_completed(self, order: Order) -> None:
        self.notify(
            NotificationType.ORDER_COMPLETED,
            NotificationAudience.CUSTOMER,
            store_id=order.store_id,
            order_id=order.id,
            message=f"Order {order.order_number} is ready for pickup",
        )

    def order_cancelled(self, order: Order) -> None:
        for audience in (NotificationAudience.ADMIN, NotificationAudience.CUSTOMER):
            self.notify(
                NotificationType.ORDER_CANCELLED,
                audience,
                store_id=order.store_id,
                order_id=order.id,
                message=f"Order {order.order_number} was cancelled",
            )

    def _deliver(
        self,
        event: NotificationType,
        audience: NotificationAudience,
        store_id: int,
        order_id: Optional[int],
        message: str,
    ) -> None:
        try:
            with self._session_factory() as db:
                notification = Notification(
                    order_id=order_id,
                    store_id=store_id,
                    audience=audience,
                    notification_type=event,
                    message=message,
                    is_read=False,
                    sent_at=datetime.now(timezone.utc),
                )
                notification_repository.create_notification(db, notification)
                db.commit()
                payload = NotificationResponse.model_validate(notification).model_dump(
                    mode="json", by_alias=True
                )
        except Exception:
            logger.exception(
                "Failed to store %s notification for order %s", event.value, order_id
            )
            return

        destination = destination_for(audience, store_id, order_id)
        try:
            self._channel.push(destination, payload)
        except Exception:
            logger.exception("Failed to push %s notification to %s", event.value, destination)


__all__ = [
    "HttpPushChannel",
    "NotificationDispatcher",
    "RealtimeChannel",
    "destination_for",
]
