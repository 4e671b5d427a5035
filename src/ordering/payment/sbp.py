"""SBP QR payment links: command, handler and link status query.

Links are not recorded on the order; SBP payments are settled through the
business account and confirmed by an administrator.
"""

from protean import handle
from protean.fields import Float, Identifier

from ordering.domain import logger, ordering
from ordering.order.order import Order
from ordering.order.queries import get_order
from ordering.payment.card import payment_description
from ordering.payment.config import PaymentConfig
from payments.gateway import get_gateway
from payments.gateway.port import SbpLinkRequest


@ordering.command(part_of="Order")
class CreateSbpPaymentLink:
    order_id = Identifier(required=True)
    user_id = Identifier()
    timeout = Float(min_value=0.1)


@ordering.command_handler(part_of=Order)
class CreateSbpPaymentLinkHandler:
    @handle(CreateSbpPaymentLink)
    def create_sbp_payment_link(self, command):
        order = get_order(command.order_id, user_id=command.user_id)
        order.assert_payable()

        config = PaymentConfig.from_env()
        result = get_gateway().create_sbp_link(
            SbpLinkRequest(
                amount=order.total_amount,
                purpose=payment_description(order),
                redirect_url=config.success_url(str(order.id)),
            ),
            timeout=command.timeout or config.provider_timeout,
        )

        logger.info("SBP link created", order_id=str(order.id), qr_id=result.qr_id)
        return {
            "qr_id": result.qr_id,
            "payment_url": result.payment_url,
            "due_date": result.due_date.isoformat(),
            "qr_image_base64": result.qr_image_base64,
        }


def get_sbp_link_status(qr_id: str, timeout: float | None = None) -> dict:
    attempt = get_gateway().get_sbp_link_info(qr_id, timeout=timeout)
    return {"qr_id": attempt.external_id, "status": attempt.raw_status}
