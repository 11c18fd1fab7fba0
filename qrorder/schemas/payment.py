from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from qrorder.models import Payment

from .common import Amount, CamelModel


class CartItem(CamelModel):
    menu_id: int
    quantity: int = Field(..., ge=1)
    options: List[str] = Field(default_factory=list)


class CartPaymentRequest(CamelModel):
    store_id: int
    seat_id: int
    order_items: List[CartItem] = Field(default_factory=list)
    total_amount: Amount
    order_name: str = Field(..., min_length=1, max_length=100)
    customer_request: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    success_url: Optional[str] = None
    fail_url: Optional[str] = None


class CartSnapshot(CamelModel):
    """Cart contents persisted on the payment before the gateway is involved."""

    store_id: int
    seat_id: int
    items: List[CartItem]
    customer_request: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    @classmethod
    def from_request(cls, cart: CartPaymentRequest) -> "CartSnapshot":
        return cls(
            store_id=cart.store_id,
            seat_id=cart.seat_id,
            items=cart.order_items,
            customer_request=cart.customer_request,
            customer_name=cart.customer_name,
            customer_phone=cart.customer_phone,
        )

    def to_metadata(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PaymentHandle(CamelModel):
    merchant_order_id: str = Field(..., alias="orderId")
    order_name: str
    amount: Amount
    customer_name: Optional[str] = None
    success_url: Optional[str] = None
    fail_url: Optional[str] = None


class PaymentConfirmRequest(CamelModel):
    payment_key: str = Field(..., min_length=1, max_length=200)
    merchant_order_id: str = Field(..., alias="orderId", min_length=1, max_length=64)
    amount: Amount

    @field_validator("amount")
    @classmethod
    def _positive_amount(cls, value):
        if value <= 0:
            raise ValueError("amount must be positive")
        return value


class PaymentCancelRequest(CamelModel):
    payment_key: str = Field(..., min_length=1, max_length=200)
    cancel_reason: str = Field(..., min_length=1, max_length=200)


class PaymentResponse(CamelModel):
    id: int
    merchant_order_id: str = Field(..., alias="orderId")
    payment_key: Optional[str] = None
    order_name: str
    status: str
    method: Optional[str] = None
    total_amount: Amount
    balance_amount: Amount
    supplied_amount: Amount
    vat: Amount
    currency: str
    linked_order_id: Optional[int] = None
    cancel_reason: Optional[str] = None
    requested_at: datetime
    approved_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None

    @classmethod
    def from_payment(cls, payment: Payment) -> "PaymentResponse":
        return cls(
            id=payment.id,
            merchant_order_id=payment.merchant_order_id,
            payment_key=payment.payment_key,
            order_name=payment.order_name,
            status=payment.status,
            method=payment.method,
            total_amount=payment.total_amount,
            balance_amount=payment.balance_amount,
            supplied_amount=payment.supplied_amount,
            vat=payment.vat,
            currency=payment.currency,
            linked_order_id=payment.order_id,
            cancel_reason=payment.cancel_reason,
            requested_at=payment.requested_at,
            approved_at=payment.approved_at,
            canceled_at=payment.canceled_at,
        )


class PaymentConfigResponse(CamelModel):
    client_key: str
    currency: str


__all__ = [
    "CartItem",
    "CartPaymentRequest",
    "CartSnapshot",
    "PaymentHandle",
    "PaymentConfirmRequest",
    "PaymentCancelRequest",
    "PaymentResponse",
    "PaymentConfigResponse",
]
