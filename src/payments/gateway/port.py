"""Payment gateway port (abstract interface).

Defines the contract the acquiring/invoicing adapters implement. This
enables swapping between FakeGateway (dev/test) and TbankGateway
(production) without changing any domain or application code.

Every provider-side payment attempt is reported as a ``PaymentAttempt``
tagged with the operation that produced it; provider-specific fields never
reach the Order aggregate.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

CONFIRMED = "CONFIRMED"


class AttemptKind(Enum):
    CARD = "Card"
    SBP = "Sbp"
    INVOICE = "Invoice"


@dataclass(frozen=True)
class PaymentAttempt:
    """A provider-side payment attempt and its raw status."""

    kind: AttemptKind
    external_id: str
    raw_status: str

    @property
    def is_confirmed(self) -> bool:
        # Only card acquiring reports a terminal confirmation we fold into PAID.
        return self.kind is AttemptKind.CARD and self.raw_status == CONFIRMED


@dataclass(frozen=True)
class CardPaymentRequest:
    order_key: str
    amount_kopecks: int
    description: str
    success_url: str
    fail_url: str | None = None
    notification_url: str | None = None


@dataclass(frozen=True)
class CardPaymentResult:
    payment_id: str
    payment_url: str
    status: str | None = None


@dataclass(frozen=True)
class SbpLinkRequest:
    amount: float
    purpose: str
    redirect_url: str
    account_number: str | None = None
    ttl_days: int | None = None
    vat: str | None = None


@dataclass(frozen=True)
class SbpLinkResult:
    qr_id: str
    payment_url: str
    due_date: datetime
    qr_image_base64: str | None = None


@dataclass(frozen=True)
class InvoicePayer:
    name: str
    inn: str
    kpp: str | None = None


@dataclass(frozen=True)
class InvoiceItem:
    name: str
    price: float
    amount: float
    unit: str = "шт"
    vat: str | None = None


@dataclass(frozen=True)
class InvoiceRequest:
    invoice_number: str
    invoice_date: str
    due_date: str
    payer: InvoicePayer
    items: tuple[InvoiceItem, ...]
    contacts: tuple[str, ...]
    account_number: str | None = None
    contact_phone: str | None = None
    comment: str | None = None


@dataclass(frozen=True)
class InvoiceResult:
    invoice_id: str
    pdf_url: str
    incoming_invoice_url: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface.

    ``timeout`` (seconds) overrides the adapter's default for one call.
    """

    @abstractmethod
    def init_card_payment(self, request: CardPaymentRequest, timeout: float | None = None) -> CardPaymentResult:
        """Start a card payment and return the hosted payment form URL."""
        ...

    @abstractmethod
    def get_card_payment_state(self, payment_id: str, timeout: float | None = None) -> PaymentAttempt:
        """Return the provider's view of a single card payment."""
        ...

    @abstractmethod
    def check_card_order(self, order_key: str, timeout: float | None = None) -> list[PaymentAttempt]:
        """Return every card payment the provider holds for an idempotency key."""
        ...

    @abstractmethod
    def create_sbp_link(self, request: SbpLinkRequest, timeout: float | None = None) -> SbpLinkResult:
        """Create a one-time SBP QR payment link."""
        ...

    @abstractmethod
    def get_sbp_link_info(self, qr_id: str, timeout: float | None = None) -> PaymentAttempt:
        """Return the provider's view of an SBP link."""
        ...

    @abstractmethod
    def send_invoice(self, request: InvoiceRequest, timeout: float | None = None) -> InvoiceResult:
        """Issue an invoice to a business payer."""
        ...

    @abstractmethod
    def get_invoice_info(self, invoice_id: str, timeout: float | None = None) -> PaymentAttempt:
        """Return the provider's view of an issued invoice."""
        ...

    @abstractmethod
    def verify_notification(self, payload: Mapping[str, Any]) -> bool:
        """Verify that a webhook payload is authentically from the provider."""
        ...
