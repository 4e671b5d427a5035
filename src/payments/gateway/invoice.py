"""Business invoice issuance."""

import re
from typing import Any

import structlog
from protean.exceptions import ValidationError

from payments.gateway.business import BusinessApiClient
from payments.gateway.errors import GatewayError
from payments.gateway.port import AttemptKind, InvoiceRequest, InvoiceResult, PaymentAttempt

logger = structlog.get_logger(__name__)

SEND_PATH = "/api/v1/invoice/send"
INFO_PATH = "/api/v1/openapi/invoice"

VAT_VALUES = ("None", "0", "5", "7", "10", "18", "20", "22")
INVOICE_NUMBER_RE = re.compile(r"^\d{1,15}$")
ACCOUNT_NUMBER_RE = re.compile(r"^(\d{20}|\d{22})$")
INN_RE = re.compile(r"^(\d{10}|\d{12})$")
KPP_RE = re.compile(r"^\d{9}$")
PHONE_RE = re.compile(r"^\+7\d{10}$")
MAX_ITEMS = 100
MAX_CONTACTS = 10


class InvoiceClient(BusinessApiClient):
    provider = "T-Bank invoice"

    def __init__(self, client, base_url, api_key, account_number="") -> None:
        super().__init__(client, base_url, api_key)
        self._account_number = account_number

    def _validate(self, request: InvoiceRequest) -> dict[str, Any]:
        if not INVOICE_NUMBER_RE.match(request.invoice_number or ""):
            raise ValidationError({"invoice_number": ["Invoice number must be 1-15 digits"]})

        account_number = request.account_number or self._account_number
        if not ACCOUNT_NUMBER_RE.match(account_number or ""):
            raise ValidationError({"account_number": ["Account number must be 20 or 22 digits"]})

        payer = request.payer
        if not payer.name or not payer.name.strip():
            raise ValidationError({"payer.name": ["Payer name is required"]})
        if not INN_RE.match(payer.inn or ""):
            raise ValidationError({"payer.inn": ["INN must be 10 or 12 digits"]})
        # Legal entities (10-digit INN) always have a KPP
        if len(payer.inn) == 10 and not payer.kpp:
            raise ValidationError({"payer.kpp": ["KPP is required for a 10-digit INN"]})
        if payer.kpp and not KPP_RE.match(payer.kpp):
            raise ValidationError({"payer.kpp": ["KPP must be 9 digits"]})

        if not 1 <= len(request.items) <= MAX_ITEMS:
            raise ValidationError({"items": [f"Invoice must have 1-{MAX_ITEMS} items"]})
        for index, item in enumerate(request.items, start=1):
            vat = item.vat or "None"
            if vat not in VAT_VALUES:
                raise ValidationError({"items": [f"Item {index}: VAT must be one of: {', '.join(VAT_VALUES)}"]})
            if item.price <= 0 or item.amount <= 0:
                raise ValidationError({"items": [f"Item {index}: price and amount must be positive"]})

        if not 1 <= len(request.contacts) <= MAX_CONTACTS:
            raise ValidationError({"contacts": [f"Invoice must have 1-{MAX_CONTACTS} contacts"]})
        if request.contact_phone and not PHONE_RE.match(request.contact_phone):
            raise ValidationError({"contact_phone": ["Phone must match +7XXXXXXXXXX"]})

        payer_body = {"name": payer.name, "inn": payer.inn}
        if payer.kpp:
            payer_body["kpp"] = payer.kpp

        body: dict[str, Any] = {
            "invoiceNumber": request.invoice_number,
            "invoiceDate": request.invoice_date,
            "dueDate": request.due_date,
            "accountNumber": account_number,
            "payer": payer_body,
            "items": [
                {
                    "name": item.name,
                    "price": round(float(item.price), 2),
                    "unit": item.unit,
                    "vat": item.vat or "None",
                    "amount": item.amount,
                }
                for item in request.items
            ],
            "contacts": [{"email": email} for email in request.contacts],
        }
        if request.contact_phone:
            body["contactPhone"] = request.contact_phone
        if request.comment:
            body["comment"] = request.comment
        return body

    def send_invoice(self, request: InvoiceRequest, timeout: float | None = None) -> InvoiceResult:
        self._ensure_configured()
        body = self._validate(request)

        logger.info("Sending invoice", invoice_number=request.invoice_number, items=len(request.items))
        data = self._post(SEND_PATH, body, "send invoice", timeout)

        invoice_id = data.get("invoiceId")
        pdf_url = data.get("pdfUrl")
        if not invoice_id or not pdf_url:
            raise GatewayError(f"{self.provider}: no pdfUrl or invoiceId in response")

        logger.info("Invoice sent", invoice_id=invoice_id)
        return InvoiceResult(
            invoice_id=str(invoice_id),
            pdf_url=str(pdf_url),
            incoming_invoice_url=data.get("incomingInvoiceUrl"),
        )

    def get_invoice_info(self, invoice_id: str, timeout: float | None = None) -> PaymentAttempt:
        self._ensure_configured()
        if not invoice_id or not invoice_id.strip():
            raise ValidationError({"invoice_id": ["invoiceId is required"]})

        data = self._get(f"{INFO_PATH}/{self._segment(invoice_id)}/info", "invoice info", timeout)
        return PaymentAttempt(
            kind=AttemptKind.INVOICE,
            external_id=invoice_id,
            raw_status=str(data.get("status") or "UNKNOWN"),
        )
