"""Error taxonomy shared by the services and mapped once at the API boundary."""

from __future__ import annotations

from typing import Optional

from fastapi import status


class AppError(Exception):
    """Base class for caller-visible failures.

    ``code`` is the machine-readable identifier returned to clients and
    ``retryable`` tells operators whether repeating the request can succeed.
    """

    code: str = "APP_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    retryable: bool = False

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message


class InvalidCartError(AppError):
    code = "INVALID_CART"


class AmountMismatchError(AppError):
    code = "AMOUNT_MISMATCH"


class MenuUnavailableError(AppError):
    code = "MENU_UNAVAILABLE"


class IllegalTransitionError(AppError):
    code = "ILLEGAL_TRANSITION"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: object, requested: object):
        current_value = getattr(current, "value", current)
        requested_value = getattr(requested, "value", requested)
        super().__init__(
            f"Order status cannot change from {current_value} to {requested_value}"
        )
        self.current = current
        self.requested = requested


class PaymentStateError(AppError):
    code = "INVALID_PAYMENT_STATE"
    status_code = status.HTTP_409_CONFLICT


class PaymentNotApprovedError(AppError):
    code = "PAYMENT_NOT_APPROVED"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class AccessDeniedError(AppError):
    code = "ORDER_ACCESS_DENIED"
    status_code = status.HTTP_403_FORBIDDEN


class GatewayError(AppError):
    """Failure talking to the external payment provider."""

    code = "GATEWAY_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY


class GatewayUnavailableError(GatewayError):
    """Transport or 5xx failures that outlived the retry budget."""

    code = "GATEWAY_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True

    def __init__(self, message: str, *, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class GatewayRejectedError(GatewayError):
    """The provider refused the request outright."""

    code = "GATEWAY_REJECTED"
    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(
        self,
        message: str,
        *,
        provider_code: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider_code = provider_code
        self.http_status = http_status


class GatewayResponseError(GatewayError):
    code = "GATEWAY_BAD_RESPONSE"


class GatewayOutcomeUnknownError(GatewayError):
    """The request may have been applied by the provider; repeating it is unsafe."""

    code = "GATEWAY_OUTCOME_UNKNOWN"


class DuplicateIdError(AppError):
    code = "DUPLICATE_MERCHANT_ORDER_ID"
    status_code = status.HTTP_409_CONFLICT
    retryable = True


class DuplicateOrderNumberError(AppError):
    code = "DUPLICATE_ORDER_NUMBER"
    status_code = status.HTTP_409_CONFLICT
    retryable = True


__all__ = [
    "AppError",
    "InvalidCartError",
    "AmountMismatchError",
    "MenuUnavailableError",
    "IllegalTransitionError",
    "PaymentStateError",
    "PaymentNotApprovedError",
    "NotFoundError",
    "AccessDeniedError",
    "GatewayError",
    "GatewayUnavailableError",
    "GatewayRejectedError",
    "GatewayResponseError",
    "GatewayOutcomeUnknownError",
    "DuplicateIdError",
    "DuplicateOrderNumberError",
]
