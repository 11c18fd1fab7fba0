"""API routes for payment preparation, confirmation and cancellation."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qrorder.core.config import settings
from qrorder.dependencies import get_db, get_dispatcher, get_gateway_client
from qrorder.schemas import (
    CartPaymentRequest,
    OrderWithTokenResponse,
    PaymentCancelRequest,
    PaymentConfigResponse,
    PaymentConfirmRequest,
    PaymentHandle,
    PaymentResponse,
)
from qrorder.services import GatewayClient, NotificationDispatcher, PaymentWorkflow

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/config", response_model=PaymentConfigResponse)
def get_payment_config():
    return PaymentConfigResponse(
        client_key=settings.PAYMENT_GATEWAY_CLIENT_KEY,
        currency=settings.CURRENCY,
    )


@router.post("/prepare", response_model=PaymentHandle)
def prepare_payment(
    cart: CartPaymentRequest,
    db: Session = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = PaymentWorkflow(db, gateway, dispatcher)
    return service.prepare(cart)


@router.post("/confirm", response_model=OrderWithTokenResponse)
def confirm_payment(
    request: PaymentConfirmRequest,
    db: Session = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = PaymentWorkflow(db, gateway, dispatcher)
    return service.confirm(request.payment_key, request.merchant_order_id, request.amount)


@router.post("/cancel", response_model=PaymentResponse)
def cancel_payment(
    request: PaymentCancelRequest,
    db: Session = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = PaymentWorkflow(db, gateway, dispatcher)
    payment = service.cancel(request.payment_key, request.cancel_reason)
    return PaymentResponse.from_payment(payment)


@router.get("/order/{merchant_order_id}", response_model=PaymentResponse)
def get_payment_by_order_id(
    merchant_order_id: str,
    db: Session = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = PaymentWorkflow(db, gateway, dispatcher)
    return PaymentResponse.from_payment(service.get_payment_by_merchant_order_id(merchant_order_id))


@router.get("/{payment_key}", response_model=PaymentResponse)
def get_payment(
    payment_key: str,
    db: Session = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    service = PaymentWorkflow(db, gateway, dispatcher)
    return PaymentResponse.from_payment(service.get_payment_by_key(payment_key))


__all__ = ["router"]
