"""Notification hook: reacts to order events with at-most-once side effects.

``OrderCreated`` sends the "order created" email. ``OrderPaid`` renders the
training application and sends the "payment received" email. Each is
recorded as an ``OrderNotification`` keyed by order and kind before anything
is sent, so a duplicate event finds the existing record and stops.
"""

import json

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.notification.delivery import deliver
from ordering.notification.notification import NotificationKind, OrderNotification
from ordering.order.events import OrderCreated, OrderPaid
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def find_notification(order_id, kind) -> OrderNotification | None:
    repo = current_domain.repository_for(OrderNotification)
    existing = repo._dao.query.filter(dedup_key=OrderNotification.dedup_key_for(order_id, kind)).all().items
    return existing[0] if existing else None


def dispatch_once(order_id, kind, context: dict) -> None:
    if find_notification(order_id, kind) is not None:
        logger.info("Notification already dispatched, skipping", order_id=str(order_id), kind=kind)
        return

    notification = OrderNotification.create(order_id=order_id, kind=kind, context_data=json.dumps(context))

    try:
        order = current_domain.repository_for(Order).get(order_id)
    except Exception:
        logger.error("Failed to load order for notification", order_id=str(order_id), kind=kind)
        notification.begin_attempt()
        notification.mark_failed("Order could not be loaded")
    else:
        deliver(notification, order)

    current_domain.repository_for(OrderNotification).add(notification)


@ordering.event_handler(part_of=Order)
class OrderNotificationHandler:
    @handle(OrderCreated)
    def on_order_created(self, event: OrderCreated) -> None:
        dispatch_once(
            str(event.order_id),
            NotificationKind.ORDER_CREATED.value,
            {"number": event.number, "total_amount": event.total_amount},
        )

    @handle(OrderPaid)
    def on_order_paid(self, event: OrderPaid) -> None:
        dispatch_once(
            str(event.order_id),
            NotificationKind.PAYMENT_CONFIRMED.value,
            {
                "number": event.number,
                "total_amount": event.total_amount,
                "payment_id": event.payment_id,
                "source": event.source,
            },
        )
