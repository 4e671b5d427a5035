"""T-Bank payment gateway adapter.

Composes the card acquiring, SBP link and invoice clients behind the
``PaymentGateway`` port. One ``httpx.Client`` is shared; every call has the
settings timeout unless the caller passes its own.
"""

from collections.abc import Mapping
from typing import Any

import httpx

from payments.gateway.eacq import EacqClient
from payments.gateway.invoice import InvoiceClient
from payments.gateway.port import (
    CardPaymentRequest,
    CardPaymentResult,
    InvoiceRequest,
    InvoiceResult,
    PaymentAttempt,
    PaymentGateway,
    SbpLinkRequest,
    SbpLinkResult,
)
from payments.gateway.sbp import SbpClient
from payments.gateway.settings import TbankSettings


class TbankGateway(PaymentGateway):
    """Production gateway adapter."""

    def __init__(self, settings: TbankSettings, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        self._client = httpx.Client(timeout=settings.timeout, transport=transport)
        self.eacq = EacqClient(self._client, settings.eacq_base_url, settings.terminal_key, settings.password)
        self.sbp = SbpClient(
            self._client,
            settings.business_base_url,
            settings.api_key,
            account_number=settings.sbp_account_number,
            vat=settings.sbp_vat,
            ttl_days=settings.sbp_link_ttl_days,
        )
        self.invoices = InvoiceClient(
            self._client,
            settings.business_base_url,
            settings.api_key,
            account_number=settings.invoice_account_number,
        )

    def close(self) -> None:
        self._client.close()

    def init_card_payment(self, request: CardPaymentRequest, timeout: float | None = None) -> CardPaymentResult:
        return self.eacq.init(request, timeout=timeout)

    def get_card_payment_state(self, payment_id: str, timeout: float | None = None) -> PaymentAttempt:
        return self.eacq.get_state(payment_id, timeout=timeout)

    def check_card_order(self, order_key: str, timeout: float | None = None) -> list[PaymentAttempt]:
        return self.eacq.check_order(order_key, timeout=timeout)

    def create_sbp_link(self, request: SbpLinkRequest, timeout: float | None = None) -> SbpLinkResult:
        return self.sbp.create_onetime_link(request, timeout=timeout)

    def get_sbp_link_info(self, qr_id: str, timeout: float | None = None) -> PaymentAttempt:
        return self.sbp.get_link_info(qr_id, timeout=timeout)

    def send_invoice(self, request: InvoiceRequest, timeout: float | None = None) -> InvoiceResult:
        return self.invoices.send_invoice(request, timeout=timeout)

    def get_invoice_info(self, invoice_id: str, timeout: float | None = None) -> PaymentAttempt:
        return self.invoices.get_invoice_info(invoice_id, timeout=timeout)

    def verify_notification(self, payload: Mapping[str, Any]) -> bool:
        return self.eacq.verify(dict(payload))
