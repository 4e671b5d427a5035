"""Card payment initiation: command and handler.

Every attempt gets a fresh idempotency key, since the provider refuses to
re-open a payment under an OrderId it has already seen. The order remembers
only the latest attempt; it stays AWAITING_PAYMENT until a confirmation
arrives through reconciliation.
"""

from protean import handle
from protean.fields import Float, Identifier
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order
from ordering.order.queries import get_order
from ordering.payment.config import PaymentConfig
from ordering.utils.money import to_kopecks
from payments.gateway import get_gateway
from payments.gateway.eacq import build_payment_key
from payments.gateway.port import CardPaymentRequest


def payment_description(order: Order) -> str:
    return f"Оплата заказа {order.number}"


@ordering.command(part_of="Order")
class InitiateCardPayment:
    order_id = Identifier(required=True)
    user_id = Identifier()
    timeout = Float(min_value=0.1)  # seconds; overrides the adapter default


@ordering.command_handler(part_of=Order)
class InitiateCardPaymentHandler:
    @handle(InitiateCardPayment)
    def initiate_card_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id, user_id=command.user_id)
        order.assert_payable()

        config = PaymentConfig.from_env()
        order_id = str(order.id)
        payment_key = build_payment_key(order_id)

        result = get_gateway().init_card_payment(
            CardPaymentRequest(
                order_key=payment_key,
                amount_kopecks=to_kopecks(order.total_amount),
                description=payment_description(order),
                success_url=config.success_url(order_id),
                fail_url=config.fail_url(order_id),
                notification_url=config.notification_url(),
            ),
            timeout=command.timeout or config.provider_timeout,
        )

        order.record_card_payment(result.payment_id, payment_key)
        repo.add(order)

        logger.info("Card payment initiated", order_id=order_id, payment_id=result.payment_id)
        return {
            "payment_id": result.payment_id,
            "payment_url": result.payment_url,
            "status": result.status,
        }
