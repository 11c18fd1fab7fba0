"""API routes for customer order lookups and staff order management."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from qrorder.dependencies import get_db, get_dispatcher
from qrorder.models import OrderStatus
from qrorder.schemas import OrderResponse, OrderStatusUpdate
from qrorder.services import NotificationDispatcher, OrderService

router = APIRouter(tags=["orders"])


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    access_token: str = Query(..., alias="accessToken"),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = OrderService(db, dispatcher)
    return service.get_order(order_id, access_token)


@router.get("/orders/number/{order_number}", response_model=OrderResponse)
def get_order_by_number(
    order_number: str,
    access_token: str = Query(..., alias="accessToken"),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = OrderService(db, dispatcher)
    return service.get_order_by_number(order_number, access_token)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    access_token: str = Query(..., alias="accessToken"),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = OrderService(db, dispatcher)
    return service.cancel_order(order_id, access_token)


@router.get("/stores/{store_id}/orders", response_model=List[OrderResponse])
def list_store_orders(
    store_id: int,
    status: Optional[OrderStatus] = None,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = OrderService(db, dispatcher)
    return service.list_orders(store_id, status)


@router.get("/stores/{store_id}/orders/{order_id}", response_model=OrderResponse)
def get_store_order(
    store_id: int,
    order_id: int,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = OrderService(db, dispatcher)
    return service.get_store_order(store_id, order_id)


@router.patch("/stores/{store_id}/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    store_id: int,
    order_id: int,
    status_in: OrderStatusUpdate,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = OrderService(db, dispatcher)
    return service.update_status(store_id, order_id, status_in.status)


__all__ = ["router"]
