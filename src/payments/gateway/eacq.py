"""Card acquiring (EACQ) client.

Every request carries ``TerminalKey`` and a ``Token`` computed over the
request body with the terminal password.
"""

import time
from typing import Any

import httpx
import structlog
from protean.exceptions import ValidationError

from payments.gateway.errors import GatewayConfigurationError, GatewayError
from payments.gateway.port import AttemptKind, CardPaymentRequest, CardPaymentResult, PaymentAttempt
from payments.gateway.signing import TOKEN_FIELD, build_token, verify_token
from payments.gateway.transport import read_json, send

logger = structlog.get_logger(__name__)

PROVIDER = "T-Bank EACQ"

MAX_ORDER_KEY_LENGTH = 36
MAX_DESCRIPTION_LENGTH = 140


def build_payment_key(order_id: str, now_ms: int | None = None) -> str:
    """Per-attempt idempotency key: ``<order_id>_<ms suffix>``, at most 36 chars.

    The order id is recovered from a key with :func:`order_id_from_key`.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{order_id}_{str(now_ms)[-10:]}"[:MAX_ORDER_KEY_LENGTH]


def order_id_from_key(order_key: str) -> str:
    if "_" not in order_key:
        return order_key
    return order_key.rsplit("_", 1)[0]


class EacqClient:
    def __init__(self, client: httpx.Client, base_url: str, terminal_key: str, password: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._terminal_key = terminal_key
        self._password = password

    def _ensure_configured(self) -> None:
        if not self._terminal_key or not self._password:
            raise GatewayConfigurationError(
                "T-Bank EACQ is not configured (TBANK_EACQ_TERMINAL_KEY / TBANK_EACQ_PASSWORD)",
                status_code=503,
            )

    def _signed(self, body: dict[str, Any]) -> dict[str, Any]:
        body = {"TerminalKey": self._terminal_key, **body}
        body[TOKEN_FIELD] = build_token(body, self._password)
        return body

    def _call(self, path: str, body: dict[str, Any], action: str, timeout: float | None) -> dict[str, Any]:
        self._ensure_configured()
        response = send(
            self._client,
            "POST",
            f"{self._base_url}{path}",
            provider=PROVIDER,
            json=self._signed(body),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
        data = read_json(response, provider=PROVIDER)

        if not response.is_success or not data.get("Success"):
            message = data.get("Message") or data.get("Details") or f"{action} failed ({response.status_code})"
            logger.warning(
                "EACQ call rejected",
                action=action,
                status_code=response.status_code,
                error_code=data.get("ErrorCode"),
                message=message,
            )
            raise GatewayError(str(message), status_code=response.status_code, error_code=data.get("ErrorCode"))
        return data

    def init(self, request: CardPaymentRequest, timeout: float | None = None) -> CardPaymentResult:
        if request.amount_kopecks <= 0:
            raise ValidationError({"amount": ["Amount must be positive"]})
        if not request.order_key:
            raise ValidationError({"order_key": ["Order key is required"]})

        body: dict[str, Any] = {
            "Amount": request.amount_kopecks,
            "OrderId": request.order_key[:MAX_ORDER_KEY_LENGTH],
            "Description": request.description[:MAX_DESCRIPTION_LENGTH],
            "SuccessURL": request.success_url,
        }
        if request.fail_url:
            body["FailURL"] = request.fail_url
        if request.notification_url:
            body["NotificationURL"] = request.notification_url

        data = self._call("/v2/Init", body, "Init", timeout)

        payment_id = data.get("PaymentId")
        payment_url = data.get("PaymentURL")
        if not payment_id or not payment_url:
            raise GatewayError(f"{PROVIDER}: no PaymentId or PaymentURL in response")

        return CardPaymentResult(
            payment_id=str(payment_id),
            payment_url=str(payment_url),
            status=data.get("Status"),
        )

    def get_state(self, payment_id: str, timeout: float | None = None) -> PaymentAttempt:
        data = self._call("/v2/GetState", {"PaymentId": payment_id}, "GetState", timeout)
        return PaymentAttempt(
            kind=AttemptKind.CARD,
            external_id=str(data.get("PaymentId") or payment_id),
            raw_status=str(data.get("Status") or "UNKNOWN"),
        )

    def check_order(self, order_key: str, timeout: float | None = None) -> list[PaymentAttempt]:
        data = self._call("/v2/CheckOrder", {"OrderId": order_key}, "CheckOrder", timeout)
        payments = data.get("Payments") or []
        return [
            PaymentAttempt(
                kind=AttemptKind.CARD,
                external_id=str(item.get("PaymentId", "")),
                raw_status=str(item.get("Status") or "UNKNOWN"),
            )
            for item in payments
            if isinstance(item, dict)
        ]

    def verify(self, payload: dict[str, Any]) -> bool:
        return verify_token(payload, self._password)
