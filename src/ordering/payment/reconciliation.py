"""Payment reconciliation: webhook confirmation and status polling.

The provider notification (push) and the client-triggered sync (pull) race
each other and may both arrive more than once. Both load the order afresh
and end in ``apply_payment_confirmation``, which applies
``Order.confirm_payment``: only AWAITING_PAYMENT moves to PAID, a paid order
is left alone, and a cancelled one ignores the confirmation. No locks are
taken; the one-way guard is what keeps duplicates harmless. When both
channels load the same unpaid version, the slower write fails the version
check; it is re-applied to the stored order, which is already PAID.
"""

from protean import handle
from protean.exceptions import ExpectedVersionError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order, PaymentSource
from ordering.order.queries import get_order
from ordering.payment.config import PaymentConfig
from payments.gateway import get_gateway


def apply_payment_confirmation(order: Order, payment_id=None, source=PaymentSource.WEBHOOK.value) -> bool:
    """Apply a confirmed provider payment. Returns whether the order changed."""
    repo = current_domain.repository_for(Order)
    updated = order.confirm_payment(payment_id=payment_id, source=source)
    if updated:
        try:
            repo.add(order)
        except ExpectedVersionError:
            logger.info("Order changed concurrently, re-applying confirmation", order_id=str(order.id), source=source)
            return apply_payment_confirmation(repo.get(order.id), payment_id, source)
        logger.info("Order paid", order_id=str(order.id), number=order.number, source=source)
    else:
        logger.info(
            "Payment confirmation ignored",
            order_id=str(order.id),
            status=order.status,
            source=source,
        )
    return updated


def confirm_order_payment(order_id, payment_id=None, source=PaymentSource.WEBHOOK.value) -> bool:
    order = current_domain.repository_for(Order).get(order_id)
    return apply_payment_confirmation(order, payment_id, source)


@ordering.command(part_of="Order")
class ConfirmOrderPayment:
    order_id = Identifier(required=True)
    payment_id = String(max_length=64)
    source = String(choices=PaymentSource, default=PaymentSource.WEBHOOK.value)


@ordering.command(part_of="Order")
class SyncOrderPaymentStatus:
    order_id = Identifier(required=True)
    user_id = Identifier()
    timeout = Float(min_value=0.1)


@ordering.command_handler(part_of=Order)
class PaymentReconciliationHandler:
    @handle(ConfirmOrderPayment)
    def confirm_payment(self, command):
        return confirm_order_payment(command.order_id, command.payment_id, command.source)

    @handle(SyncOrderPaymentStatus)
    def sync_payment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id, user_id=command.user_id)
        gateway = get_gateway()
        timeout = command.timeout or PaymentConfig.from_env().provider_timeout

        attempts = []
        if order.payment_key:
            attempts = gateway.check_card_order(order.payment_key, timeout=timeout)
        if not attempts and order.payment_id:
            attempts = [gateway.get_card_payment_state(order.payment_id, timeout=timeout)]

        updated = False
        confirmed = next((attempt for attempt in attempts if attempt.is_confirmed), None)
        if confirmed is not None:
            updated = apply_payment_confirmation(order, confirmed.external_id, PaymentSource.POLL.value)

        return {
            "status": order.status if updated else repo.get(command.order_id).status,
            "updated": updated,
            "payments": [{"payment_id": attempt.external_id, "status": attempt.raw_status} for attempt in attempts],
        }
