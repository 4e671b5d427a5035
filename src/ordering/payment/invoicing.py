"""Invoice issuance for organizations: command, handler and status query.

Issuing is idempotent per order: once an invoice is cached on the order, a
repeated request returns it without calling the provider again.
"""

import re
from datetime import date, timedelta

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order
from ordering.order.queries import get_order
from ordering.payment.config import PaymentConfig
from payments.gateway import get_gateway
from payments.gateway.port import InvoiceItem, InvoicePayer, InvoiceRequest


def _invoice_result(order: Order, cached: bool) -> dict:
    return {
        "invoice_id": order.invoice_id,
        "pdf_url": order.invoice_pdf_url,
        "incoming_invoice_url": order.incoming_invoice_url,
        "cached": cached,
    }


def invoice_number_for(order: Order) -> str:
    """The digits of the order number (``E-000123`` → ``000123``)."""
    return re.sub(r"\D", "", order.number or "")


@ordering.command(part_of="Order")
class IssueInvoice:
    order_id = Identifier(required=True)
    user_id = Identifier()
    payer_name = String(required=True, max_length=512)
    payer_inn = String(required=True, max_length=12)
    payer_kpp = String(max_length=9)
    contact_phone = String(max_length=12)
    comment = String(max_length=1000)
    timeout = Float(min_value=0.1)


@ordering.command_handler(part_of=Order)
class IssueInvoiceHandler:
    @handle(IssueInvoice)
    def issue_invoice(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id, user_id=command.user_id)

        if order.has_invoice:
            logger.info("Invoice already issued, returning cached", order_id=str(order.id))
            return _invoice_result(order, cached=True)

        order.assert_payable()
        if not order.contact_email:
            raise ValidationError({"contact_email": ["A contact email is required to send an invoice"]})

        config = PaymentConfig.from_env()
        today = date.today()
        request = InvoiceRequest(
            invoice_number=invoice_number_for(order),
            invoice_date=today.isoformat(),
            due_date=(today + timedelta(days=config.invoice_due_days)).isoformat(),
            payer=InvoicePayer(
                name=command.payer_name.strip(),
                inn=command.payer_inn.strip(),
                kpp=(command.payer_kpp or "").strip() or None,
            ),
            items=tuple(
                InvoiceItem(
                    name=line.display_title,
                    price=line.price,
                    amount=line.quantity,
                    vat=config.invoice_vat,
                )
                for line in order.lines
            ),
            contacts=(order.contact_email,),
            contact_phone=command.contact_phone or None,
            comment=command.comment or None,
        )

        result = get_gateway().send_invoice(request, timeout=command.timeout or config.provider_timeout)
        order.record_invoice(result.invoice_id, result.pdf_url, result.incoming_invoice_url)
        repo.add(order)

        logger.info("Invoice issued", order_id=str(order.id), invoice_id=result.invoice_id)
        return _invoice_result(order, cached=False)


def get_invoice_status(order_id: str, user_id: str | None = None, timeout: float | None = None) -> dict:
    order = get_order(order_id, user_id=user_id)
    if not order.has_invoice:
        raise ValidationError({"invoice_id": ["No invoice has been issued for this order"]})

    attempt = get_gateway().get_invoice_info(order.invoice_id, timeout=timeout)
    return {"invoice_id": attempt.external_id, "status": attempt.raw_status}
