"""FastAPI routes for the Ordering domain: orders, payments and provider webhooks."""

import json

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    CardPaymentResponse,
    CreateOrderRequest,
    InvoiceResponse,
    InvoiceStatusResponse,
    IssueInvoiceRequest,
    NotificationResponse,
    OrderCreatedResponse,
    OrderLineResponse,
    OrderListResponse,
    OrderResponse,
    PaymentSyncResponse,
    ProviderTimeoutRequest,
    SbpLinkResponse,
    SbpLinkStatusResponse,
    StatusResponse,
    TrainingSchema,
    UpdateDetailsRequest,
    UpdateStatusRequest,
)
from ordering.domain import logger
from ordering.notification.retry import RetryOrderNotification, list_order_notifications
from ordering.order.creation import TRAINING_FIELDS, CreateOrderFromCart
from ordering.order.deletion import DeleteOrder
from ordering.order.modification import UpdateOrderDetails
from ordering.order.order import Order, PaymentSource
from ordering.order.queries import get_order, list_orders, list_user_orders
from ordering.order.status import UpdateOrderStatus
from ordering.payment.card import InitiateCardPayment
from ordering.payment.config import PaymentConfig
from ordering.payment.invoicing import IssueInvoice, get_invoice_status
from ordering.payment.reconciliation import ConfirmOrderPayment, SyncOrderPaymentStatus
from ordering.payment.sbp import CreateSbpPaymentLink, get_sbp_link_status
from payments.gateway import get_gateway
from payments.gateway.eacq import order_id_from_key


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        number=order.number,
        user_id=str(order.user_id),
        customer_type=order.customer_type,
        organization_id=str(order.organization_id) if order.organization_id else None,
        contact_email=order.contact_email,
        contact_phone=order.contact_phone,
        status=order.status,
        total_amount=order.total_amount,
        lines=[
            OrderLineResponse(
                program_id=str(line.program_id),
                pricing_index=line.pricing_index,
                sub_program_index=line.sub_program_index,
                program_title=line.program_title,
                sub_program_title=line.sub_program_title,
                display_title=line.display_title,
                hours=line.hours,
                price=line.price,
                quantity=line.quantity,
                line_amount=line.line_amount,
                learners=line.learner_list,
            )
            for line in order.lines
        ],
        training=TrainingSchema(**{name: getattr(order, name) for name in TRAINING_FIELDS}),
        payment_id=order.payment_id,
        invoice_id=order.invoice_id,
        invoice_pdf_url=order.invoice_pdf_url,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _process_reconciliation(command):
    """Process a payment confirmation, re-running it once if the order changed underneath.

    The re-run reads the stored order, so a confirmation that lost the race
    becomes a no-op.
    """
    try:
        return current_domain.process(command, asynchronous=False)
    except ExpectedVersionError:
        logger.info("Order changed concurrently, re-running", command=command.__class__.__name__)
        return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderCreatedResponse)
async def create_order(body: CreateOrderRequest) -> OrderCreatedResponse:
    """Create an order from the user's cart, re-validating the submitted draft."""
    training = body.training.model_dump(mode="json", exclude_none=True) if body.training else {}
    command = CreateOrderFromCart(
        user_id=body.user_id,
        customer_type=body.customer_type,
        organization_id=body.organization_id,
        contact_email=body.contact_email,
        contact_phone=body.contact_phone,
        lines=json.dumps([line.model_dump(mode="json") for line in body.lines]),
        total_amount=body.total_amount,
        training=json.dumps(training),
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = get_order(order_id)
    return OrderCreatedResponse(order_id=order_id, number=order.number)


@order_router.get("", response_model=OrderListResponse)
async def read_orders(
    user_id: str,
    status: str | None = None,
    limit: int = Query(default=50),
    offset: int = Query(default=0),
) -> OrderListResponse:
    orders = list_user_orders(user_id, status=status, limit=limit, offset=offset)
    return OrderListResponse(
        orders=[_order_response(order) for order in orders],
        limit=min(max(1, limit), 100),
        offset=max(0, offset),
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def read_order(order_id: str, user_id: str | None = None) -> OrderResponse:
    return _order_response(get_order(order_id, user_id=user_id))


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_status(order_id: str, body: UpdateStatusRequest, user_id: str | None = None) -> StatusResponse:
    command = UpdateOrderStatus(order_id=order_id, status=body.status, user_id=user_id)
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=status)


@order_router.patch("/{order_id}", response_model=StatusResponse)
async def update_details(order_id: str, body: UpdateDetailsRequest, user_id: str | None = None) -> StatusResponse:
    command = UpdateOrderDetails(order_id=order_id, user_id=user_id, **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.delete("/{order_id}", response_model=StatusResponse)
async def delete_order(order_id: str, user_id: str | None = None) -> StatusResponse:
    current_domain.process(DeleteOrder(order_id=order_id, user_id=user_id), asynchronous=False)
    return StatusResponse(status="deleted")


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
# Handlers that call the provider are plain functions; FastAPI runs them in
# its threadpool.
@order_router.post("/{order_id}/payment/card", response_model=CardPaymentResponse)
def initiate_card_payment(
    order_id: str, body: ProviderTimeoutRequest | None = None, user_id: str | None = None
) -> CardPaymentResponse:
    """Open a card payment and return the hosted payment page URL."""
    command = InitiateCardPayment(order_id=order_id, user_id=user_id, timeout=body.timeout if body else None)
    result = current_domain.process(command, asynchronous=False)
    return CardPaymentResponse(**result)


@order_router.post("/{order_id}/payment/sbp", response_model=SbpLinkResponse)
def create_sbp_link(
    order_id: str, body: ProviderTimeoutRequest | None = None, user_id: str | None = None
) -> SbpLinkResponse:
    command = CreateSbpPaymentLink(order_id=order_id, user_id=user_id, timeout=body.timeout if body else None)
    result = current_domain.process(command, asynchronous=False)
    return SbpLinkResponse(**result)


@order_router.get("/{order_id}/payment/sbp/{qr_id}", response_model=SbpLinkStatusResponse)
def read_sbp_link_status(order_id: str, qr_id: str, user_id: str | None = None) -> SbpLinkStatusResponse:
    get_order(order_id, user_id=user_id)
    return SbpLinkStatusResponse(**get_sbp_link_status(qr_id, timeout=PaymentConfig.from_env().provider_timeout))


@order_router.post("/{order_id}/invoice", response_model=InvoiceResponse)
def issue_invoice(order_id: str, body: IssueInvoiceRequest, user_id: str | None = None) -> InvoiceResponse:
    """Issue an invoice to an organization; a repeat request returns the cached one."""
    command = IssueInvoice(order_id=order_id, user_id=user_id, **body.model_dump(exclude_none=True))
    result = current_domain.process(command, asynchronous=False)
    return InvoiceResponse(**result)


@order_router.get("/{order_id}/invoice", response_model=InvoiceStatusResponse)
def read_invoice_status(order_id: str, user_id: str | None = None) -> InvoiceStatusResponse:
    timeout = PaymentConfig.from_env().provider_timeout
    return InvoiceStatusResponse(**get_invoice_status(order_id, user_id=user_id, timeout=timeout))


@order_router.post("/{order_id}/payment/sync", response_model=PaymentSyncResponse)
def sync_payment_status(
    order_id: str, body: ProviderTimeoutRequest | None = None, user_id: str | None = None
) -> PaymentSyncResponse:
    """Poll the provider for the order's card payments and apply a confirmation if found."""
    command = SyncOrderPaymentStatus(order_id=order_id, user_id=user_id, timeout=body.timeout if body else None)
    result = _process_reconciliation(command)
    return PaymentSyncResponse(**result)


@order_router.get("/{order_id}/payment-success")
async def payment_success_redirect(order_id: str) -> RedirectResponse:
    return RedirectResponse(PaymentConfig.from_env().frontend_result_url(order_id, "success"), status_code=302)


@order_router.get("/{order_id}/payment-fail")
async def payment_fail_redirect(order_id: str) -> RedirectResponse:
    return RedirectResponse(PaymentConfig.from_env().frontend_result_url(order_id, "fail"), status_code=302)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
@order_router.get("/{order_id}/notifications", response_model=list[NotificationResponse])
async def read_notifications(order_id: str) -> list[NotificationResponse]:
    return [
        NotificationResponse(
            notification_id=str(notification.id),
            kind=notification.kind,
            status=notification.status,
            attempts=notification.attempts,
            recipient=notification.recipient,
            last_error=notification.last_error,
            sent_at=notification.sent_at,
        )
        for notification in list_order_notifications(order_id)
    ]


@order_router.post("/{order_id}/notifications/{notification_id}/retry", response_model=StatusResponse)
async def retry_notification(order_id: str, notification_id: str) -> StatusResponse:  # noqa: ARG001
    command = RetryOrderNotification(notification_id=notification_id)
    status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=status)


# ---------------------------------------------------------------------------
# Back office
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_router.get("", response_model=OrderListResponse)
async def read_all_orders(
    status: str | None = None,
    user_id: str | None = None,
    limit: int = Query(default=50),
    offset: int = Query(default=0),
) -> OrderListResponse:
    orders = list_orders(status=status, user_id=user_id, limit=limit, offset=offset)
    return OrderListResponse(
        orders=[_order_response(order) for order in orders],
        limit=min(max(1, limit), 100),
        offset=max(0, offset),
    )


# ---------------------------------------------------------------------------
# Provider webhooks
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/payment", tags=["payments"])


@webhook_router.post("/tbank-eacq/notification", response_class=PlainTextResponse)
async def card_payment_notification(request: Request) -> PlainTextResponse:
    """Receive a card payment notification.

    The provider retries until it gets a plain ``OK``. Only a correctly signed
    payload is acted on; anything other than a successful CONFIRMED payment is
    acknowledged and ignored.
    """
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    if not get_gateway().verify_notification(payload):
        logger.warning("Rejected notification with invalid token", order_key=payload.get("OrderId"))
        raise HTTPException(status_code=403, detail="Invalid token")

    order_key = payload.get("OrderId")
    if payload.get("Success") is True and payload.get("Status") == "CONFIRMED" and isinstance(order_key, str) and order_key:
        payment_id = payload.get("PaymentId")
        command = ConfirmOrderPayment(
            order_id=order_id_from_key(order_key),
            payment_id=str(payment_id) if payment_id is not None else None,
            source=PaymentSource.WEBHOOK.value,
        )
        try:
            _process_reconciliation(command)
        except ObjectNotFoundError:
            logger.warning("Notification for unknown order", order_key=order_key)
    else:
        logger.info(
            "Notification acknowledged without action",
            order_key=order_key,
            status=payload.get("Status"),
            success=payload.get("Success"),
        )

    return PlainTextResponse("OK")
