"""Delivery of order notifications through the document and email channels.

Delivery is best effort: every failure is caught, logged and recorded on
the notification so it can be retried. Nothing here raises into the payment
path.
"""

import json

import structlog
from notifications.channel import EMAIL, get_channel
from notifications.documents import get_document_generator
from notifications.templates import get_template

from ordering.notification.notification import NotificationKind, OrderNotification
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


class DeliveryError(Exception):
    pass


def _application_context(order: Order) -> dict:
    return {
        "number": order.number,
        "customer_type": order.customer_type,
        "organization_id": str(order.organization_id) if order.organization_id else None,
        "training_start_date": str(order.training_start_date) if order.training_start_date else None,
        "training_end_date": str(order.training_end_date) if order.training_end_date else None,
        "training_form": order.training_form,
        "training_language": order.training_language,
        "head_position": order.head_position,
        "head_full_name": order.head_full_name,
        "contact_person_name": order.contact_person_name,
        "contact_person_position": order.contact_person_position,
        "lines": [
            {
                "display_title": line.display_title,
                "hours": line.hours,
                "quantity": line.quantity,
                "learners": line.learner_list,
            }
            for line in order.lines
        ],
    }


def deliver(notification: OrderNotification, order: Order) -> None:
    """Attempt delivery once and record the outcome on ``notification``."""
    notification.begin_attempt()
    try:
        if notification.kind == NotificationKind.PAYMENT_CONFIRMED.value and not notification.document_ref:
            reference = get_document_generator().generate_training_application(
                str(order.id), order.number, _application_context(order)
            )
            notification.record_document(reference)

        if not order.contact_email:
            raise DeliveryError("Order has no contact email")

        context = json.loads(notification.context_data) if notification.context_data else {}
        context.update(number=order.number, total_amount=order.total_amount, document_ref=notification.document_ref)
        content = get_template(notification.kind).render(context)

        result = get_channel(EMAIL).send(
            to=order.contact_email,
            subject=content["subject"],
            body=content["body"],
            attachments=[notification.document_ref] if notification.document_ref else None,
        )
        if result.get("status") == "sent":
            notification.mark_sent(order.contact_email, result.get("message_id"))
            logger.info(
                "Order notification sent",
                order_id=str(order.id),
                kind=notification.kind,
                attempts=notification.attempts,
            )
        else:
            notification.mark_failed(result.get("error", "Unknown dispatch error"))
            logger.warning(
                "Order notification was not accepted",
                order_id=str(order.id),
                kind=notification.kind,
                error=notification.last_error,
            )
    except Exception as e:
        notification.mark_failed(str(e))
        logger.error(
            "Order notification delivery failed",
            order_id=str(order.id),
            kind=notification.kind,
            error=str(e),
        )
