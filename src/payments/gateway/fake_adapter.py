"""Configurable fake payment gateway for development and testing.

This adapter simulates the provider without any external calls. It can be
configured at runtime to succeed or fail, making it useful for:
- Automated tests with predictable outcomes
- Development without real gateway credentials

Notifications are signed with ``FAKE_PASSWORD`` using the real token
algorithm, so webhook verification is exercised end to end. Card payments
stay ``NEW`` until ``confirm()`` marks them ``CONFIRMED``.
"""

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from payments.gateway.errors import GatewayError
from payments.gateway.port import (
    CONFIRMED,
    AttemptKind,
    CardPaymentRequest,
    CardPaymentResult,
    InvoiceRequest,
    InvoiceResult,
    PaymentAttempt,
    PaymentGateway,
    SbpLinkRequest,
    SbpLinkResult,
)
from payments.gateway.signing import build_token, verify_token

FAKE_PASSWORD = "fake-password"
FAKE_TERMINAL_KEY = "FakeTerminal"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Provider unavailable"
        self.calls: list[dict] = []
        # order_key -> [{"payment_id", "status"}]
        self.card_payments: dict[str, list[dict]] = {}
        self.sbp_links: dict[str, str] = {}
        self.invoices: dict[str, str] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Provider unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append({"method": method, **kwargs})
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, status_code=502)

    def confirm(self, payment_id: str, status: str = CONFIRMED) -> None:
        """Simulate the provider moving a card payment to ``status``."""
        for attempts in self.card_payments.values():
            for attempt in attempts:
                if attempt["payment_id"] == payment_id:
                    attempt["status"] = status
                    return
        raise KeyError(payment_id)

    def notification_for(self, order_key: str, payment_id: str, status: str = CONFIRMED, **extra: Any) -> dict:
        """Build a correctly signed card notification payload."""
        payload: dict[str, Any] = {
            "TerminalKey": FAKE_TERMINAL_KEY,
            "OrderId": order_key,
            "Success": True,
            "Status": status,
            "PaymentId": payment_id,
            "ErrorCode": "0",
            **extra,
        }
        payload["Token"] = build_token(payload, FAKE_PASSWORD)
        return payload

    def init_card_payment(self, request: CardPaymentRequest, timeout: float | None = None) -> CardPaymentResult:
        self._record(
            "init_card_payment",
            order_key=request.order_key,
            amount_kopecks=request.amount_kopecks,
            description=request.description,
            timeout=timeout,
        )
        payment_id = str(uuid4().int)[:10]
        self.card_payments.setdefault(request.order_key, []).append({"payment_id": payment_id, "status": "NEW"})
        return CardPaymentResult(
            payment_id=payment_id,
            payment_url=f"https://pay.fake.local/{payment_id}",
            status="NEW",
        )

    def get_card_payment_state(self, payment_id: str, timeout: float | None = None) -> PaymentAttempt:
        self._record("get_card_payment_state", payment_id=payment_id, timeout=timeout)
        for attempts in self.card_payments.values():
            for attempt in attempts:
                if attempt["payment_id"] == payment_id:
                    return PaymentAttempt(AttemptKind.CARD, payment_id, attempt["status"])
        return PaymentAttempt(AttemptKind.CARD, payment_id, "UNKNOWN")

    def check_card_order(self, order_key: str, timeout: float | None = None) -> list[PaymentAttempt]:
        self._record("check_card_order", order_key=order_key, timeout=timeout)
        return [
            PaymentAttempt(AttemptKind.CARD, attempt["payment_id"], attempt["status"])
            for attempt in self.card_payments.get(order_key, [])
        ]

    def create_sbp_link(self, request: SbpLinkRequest, timeout: float | None = None) -> SbpLinkResult:
        self._record("create_sbp_link", amount=request.amount, purpose=request.purpose, timeout=timeout)
        qr_id = f"fake_qr_{uuid4().hex[:12]}"
        self.sbp_links[qr_id] = "NEW"
        ttl_days = request.ttl_days or 30
        return SbpLinkResult(
            qr_id=qr_id,
            payment_url=f"https://qr.fake.local/{qr_id}",
            due_date=datetime.now(UTC) + timedelta(days=ttl_days),
        )

    def get_sbp_link_info(self, qr_id: str, timeout: float | None = None) -> PaymentAttempt:
        self._record("get_sbp_link_info", qr_id=qr_id, timeout=timeout)
        return PaymentAttempt(AttemptKind.SBP, qr_id, self.sbp_links.get(qr_id, "UNKNOWN"))

    def send_invoice(self, request: InvoiceRequest, timeout: float | None = None) -> InvoiceResult:
        self._record(
            "send_invoice",
            invoice_number=request.invoice_number,
            payer_inn=request.payer.inn,
            items=len(request.items),
            timeout=timeout,
        )
        invoice_id = f"fake_inv_{uuid4().hex[:12]}"
        self.invoices[invoice_id] = "SUBMITTED"
        return InvoiceResult(
            invoice_id=invoice_id,
            pdf_url=f"https://invoices.fake.local/{invoice_id}.pdf",
            incoming_invoice_url=f"https://invoices.fake.local/{invoice_id}",
        )

    def get_invoice_info(self, invoice_id: str, timeout: float | None = None) -> PaymentAttempt:
        self._record("get_invoice_info", invoice_id=invoice_id, timeout=timeout)
        return PaymentAttempt(AttemptKind.INVOICE, invoice_id, self.invoices.get(invoice_id, "UNKNOWN"))

    def verify_notification(self, payload: Mapping[str, Any]) -> bool:
        return verify_token(payload, FAKE_PASSWORD)
