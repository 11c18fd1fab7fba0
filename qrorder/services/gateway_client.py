"""HTTP client for the external payment gateway."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Tuple, TypeVar
from urllib.parse import quote

import httpx

from qrorder.core.exceptions import (
    GatewayOutcomeUnknownError,
    GatewayRejectedError,
    GatewayResponseError,
    GatewayUnavailableError,
)
from qrorder.models import GatewayPaymentStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

SANDBOX_PROVIDER_ERROR = "PROVIDER_ERROR"
ALREADY_PROCESSED_PAYMENT = "ALREADY_PROCESSED_PAYMENT"

_VAT_DIVISOR = Decimal("1.1")


class PaymentMethod:
    CARD = "CARD"
    VIRTUAL_ACCOUNT = "VIRTUAL_ACCOUNT"
    EASY_PAY = "EASY_PAY"
    MOBILE = "MOBILE"
    TRANSFER = "TRANSFER"
    GIFT_CERTIFICATE = "GIFT_CERTIFICATE"
    OTHER = "OTHER"

    DEFAULT = EASY_PAY


# Checked in order; the first label whose keyword appears in the method wins.
_METHOD_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (PaymentMethod.CARD, ("card", "카드")),
    (PaymentMethod.VIRTUAL_ACCOUNT, ("virtual", "가상계좌")),
    (PaymentMethod.EASY_PAY, ("easy", "간편", "토스", "toss")),
    (PaymentMethod.MOBILE, ("mobile", "휴대폰")),
    (PaymentMethod.TRANSFER, ("transfer", "계좌이체")),
    (PaymentMethod.GIFT_CERTIFICATE, ("gift", "상품권")),
)


@dataclass(frozen=True)
class GatewayResult:
    payment_key: str
    merchant_order_id: str
    order_name: str
    status: str
    method: str
    total_amount: Decimal
    balance_amount: Decimal
    supplied_amount: Decimal
    vat: Decimal
    approved_at: Optional[datetime] = None

    @property
    def is_done(self) -> bool:
        return self.status == GatewayPaymentStatus.DONE


def split_vat(total: Decimal) -> Tuple[Decimal, Decimal]:
    """Split a VAT-inclusive total into ``(supplied, vat)`` at the 10% rate."""
    supplied = (total / _VAT_DIVISOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return supplied, total - supplied


def classify_payment_method(
    method: Any,
    easy_pay: Any = None,
    card: Any = None,
    virtual_account: Any = None,
) -> str:
    if isinstance(method, str) and method.strip():
        lowered = method.strip().lower()
        for label, keywords in _METHOD_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return label
        logger.info("Unrecognized payment method %r classified as %s", method, PaymentMethod.OTHER)
        return PaymentMethod.OTHER

    if easy_pay:
        return PaymentMethod.EASY_PAY
    if card:
        return PaymentMethod.CARD
    if virtual_account:
        return PaymentMethod.VIRTUAL_ACCOUNT
    return PaymentMethod.OTHER


def _string(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if isinstance(value, str) and value:
        return value
    return default


def _amount(value: Any, field_name: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise GatewayResponseError(f"Gateway field {field_name} is not a number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise GatewayResponseError(f"Gateway field {field_name} is not a number") from exc
    if not amount.is_finite() or amount < 0:
        raise GatewayResponseError(f"Gateway field {field_name} is out of range")
    return amount


def _timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring unparseable gateway timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_gateway_response(
    data: Any,
    *,
    payment_key: str = "",
    merchant_order_id: str = "",
    order_name: str = "",
) -> GatewayResult:
    """Build a :class:`GatewayResult` from a gateway JSON payload.

    Only ``totalAmount`` is mandatory. The keyword arguments provide the
    defaults for identifiers the gateway omitted.
    """
    if not isinstance(data, Mapping):
        raise GatewayResponseError("Gateway response is not a JSON object")
    if data.get("totalAmount") is None:
        raise GatewayResponseError("Gateway response is missing totalAmount")

    total = _amount(data["totalAmount"], "totalAmount")
    balance = (
        _amount(data["balanceAmount"], "balanceAmount")
        if data.get("balanceAmount") is not None
        else total
    )
    default_supplied, default_vat = split_vat(total)
    supplied = (
        _amount(data["suppliedAmount"], "suppliedAmount")
        if data.get("suppliedAmount") is not None
        else default_supplied
    )
    vat = _amount(data["vat"], "vat") if data.get("vat") is not None else default_vat

    return GatewayResult(
        payment_key=_string(data, "paymentKey", payment_key),
        merchant_order_id=_string(data, "orderId", merchant_order_id),
        order_name=_string(data, "orderName", order_name),
        status=_string(data, "status", GatewayPaymentStatus.READY),
        method=classify_payment_method(
            data.get("method"),
            data.get("easyPay"),
            data.get("card"),
            data.get("virtualAccount"),
        ),
        total_amount=total,
        balance_amount=balance,
        supplied_amount=supplied,
        vat=vat,
        approved_at=_timestamp(data.get("approvedAt")),
    )


def is_transient_error(exc: Exception) -> bool:
    if isinstance(exc, httpx.RequestError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class RetryExhaustedError(Exception):
    def __init__(self, attempts: int, last_error: Optional[Exception]):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retries with a linear backoff of ``attempt * backoff_seconds``."""

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    is_retryable: Callable[[Exception], bool] = field(default=is_transient_error)
    sleep: Callable[[float], None] = field(default=time.sleep)

    def delay_for(self, attempt: int) -> float:
        return attempt * self.backoff_seconds

    def call(self, operation: Callable[[], T]) -> T:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation()
            except Exception as exc:
                if not self.is_retryable(exc):
                    raise
                last_error = exc
                if attempt == self.max_attempts:
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    "Attempt %s/%s failed (%s); retrying in %.1fs",
                    attempt,
                    self.max_attempts,
                    exc,
                    delay,
                )
                self.sleep(delay)
        raise RetryExhaustedError(self.max_attempts, last_error) from last_error


class GatewayClient:
    """Confirms and cancels payments against the gateway REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        secret_key: str,
        timeout: float = 10.0,
        sandbox: bool = False,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._sandbox = sandbox
        self._retry_policy = retry_policy or RetryPolicy()
        self._client = httpx.Client(
            base_url=base_url,
            auth=httpx.BasicAuth(secret_key, ""),
            timeout=timeout,
            transport=transport,
        )

    @property
    def sandbox(self) -> bool:
        return self._sandbox

    def close(self) -> None:
        self._client.close()

    def confirm(self, payment_key: str, merchant_order_id: str, amount: Decimal) -> GatewayResult:
        payload = {
            "paymentKey": payment_key,
            "orderId": merchant_order_id,
            "amount": int(amount),
        }
        try:
            response = self._retry_policy.call(lambda: self._post("/confirm", payload))
        except RetryExhaustedError as exc:
            logger.error(
                "Gateway confirm for %s failed after %s attempts: %s",
                merchant_order_id,
                exc.attempts,
                exc.last_error,
            )
            raise GatewayUnavailableError(
                f"Payment gateway unavailable after {exc.attempts} attempts",
                attempts=exc.attempts,
            ) from exc
        except httpx.HTTPStatusError as exc:
            rejection = self._rejection(exc.response)
            if self._sandbox and rejection.provider_code == SANDBOX_PROVIDER_ERROR:
                logger.warning(
                    "Sandbox gateway answered %s for %s; synthesizing an approved result",
                    SANDBOX_PROVIDER_ERROR,
                    merchant_order_id,
                )
                return self._sandbox_result(payment_key, merchant_order_id, amount)
            raise rejection from exc

        return parse_gateway_response(
            self._json(response),
            payment_key=payment_key,
            merchant_order_id=merchant_order_id,
        )

    def lookup(self, payment_key: str) -> GatewayResult:
        """Fetch the provider's current record of a payment.

        Used to recover the outcome of a confirmation whose response was lost.
        """
        path = f"/{quote(payment_key, safe='')}"
        try:
            response = self._retry_policy.call(lambda: self._get(path))
        except RetryExhaustedError as exc:
            logger.error(
                "Gateway lookup for %s failed after %s attempts: %s",
                payment_key,
                exc.attempts,
                exc.last_error,
            )
            raise GatewayUnavailableError(
                f"Payment gateway unavailable after {exc.attempts} attempts",
                attempts=exc.attempts,
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise self._rejection(exc.response) from exc

        return parse_gateway_response(self._json(response), payment_key=payment_key)

    def cancel(self, payment_key: str, cancel_amount: Decimal, reason: str) -> GatewayResult:
        # Never retried: a lost response may hide a cancel the provider applied.
        payload = {"cancelReason": reason, "cancelAmount": int(cancel_amount)}
        try:
            response = self._post(f"/{quote(payment_key, safe='')}/cancel", payload)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code >= 500:
                logger.error(
                    "Gateway answered HTTP %s while canceling %s",
                    exc.response.status_code,
                    payment_key,
                )
                raise GatewayOutcomeUnknownError(
                    "Payment gateway failed while canceling; check the payment before retrying"
                ) from exc
            raise self._rejection(exc.response) from exc
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise GatewayUnavailableError(
                "Payment gateway unreachable while canceling", attempts=1
            ) from exc
        except httpx.RequestError as exc:
            logger.error("Cancel request for %s was interrupted: %s", payment_key, exc)
            raise GatewayOutcomeUnknownError(
                "Payment gateway did not answer the cancel request; check the payment before retrying"
            ) from exc

        return parse_gateway_response(self._json(response), payment_key=payment_key)

    def _get(self, path: str) -> httpx.Response:
        response = self._client.get(path)
        response.raise_for_status()
        return response

    def _post(self, path: str, payload: Mapping[str, Any]) -> httpx.Response:
        response = self._client.post(path, json=dict(payload))
        response.raise_for_status()
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayResponseError("Gateway returned a non-JSON body") from exc

    @staticmethod
    def _rejection(response: httpx.Response) -> GatewayRejectedError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        provider_code = body.get("code")
        message = body.get("message") or (
            f"Payment gateway rejected the request with HTTP {response.status_code}"
        )
        return GatewayRejectedError(
            message,
            provider_code=provider_code if isinstance(provider_code, str) else None,
            http_status=response.status_code,
        )

    @staticmethod
    def _sandbox_result(payment_key: str, merchant_order_id: str, amount: Decimal) -> GatewayResult:
        total = Decimal(amount)
        supplied, vat = split_vat(total)
        return GatewayResult(
            payment_key=payment_key,
            merchant_order_id=merchant_order_id,
            order_name="",
            status=GatewayPaymentStatus.DONE,
            method=PaymentMethod.DEFAULT,
            total_amount=total,
            balance_amount=total,
            supplied_amount=supplied,
            vat=vat,
            approved_at=datetime.now(timezone.utc),
        )


__all__ = [
    "ALREADY_PROCESSED_PAYMENT",
    "GatewayClient",
    "GatewayResult",
    "PaymentMethod",
    "RetryExhaustedError",
    "RetryPolicy",
    "classify_payment_method",
    "is_transient_error",
    "parse_gateway_response",
    "split_vat",
]
