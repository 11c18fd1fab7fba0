from collections.abc import Callable, Iterator

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from qrorder.core.config import settings
from qrorder.core.database import SessionLocal
from qrorder.services import (
    GatewayClient,
    HttpPushChannel,
    NotificationDispatcher,
    RealtimeChannel,
    RetryPolicy,
)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_gateway_client() -> Iterator[GatewayClient]:
    client = GatewayClient(
        base_url=settings.PAYMENT_GATEWAY_BASE_URL,
        secret_key=settings.PAYMENT_GATEWAY_SECRET_KEY,
        timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
        sandbox=settings.sandbox_enabled,
        retry_policy=RetryPolicy(
            max_attempts=settings.PAYMENT_CONFIRM_MAX_ATTEMPTS,
            backoff_seconds=settings.PAYMENT_CONFIRM_BACKOFF_SECONDS,
        ),
    )
    try:
        yield client
    finally:
        client.close()


def get_realtime_channel() -> RealtimeChannel:
    return HttpPushChannel()


def get_dispatcher(
    background_tasks: BackgroundTasks,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    channel: RealtimeChannel = Depends(get_realtime_channel),
) -> NotificationDispatcher:
    return NotificationDispatcher(session_factory, channel, background_tasks)
