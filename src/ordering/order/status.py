"""Manual status changes: command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order, OrderStatus
from ordering.order.queries import get_order


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    """Move an order along one edge of its lifecycle (admin action)."""

    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    user_id = Identifier()


@ordering.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id, user_id=command.user_id)
        previous = order.status
        order.change_status(command.status)
        repo.add(order)

        logger.info("Order status changed", order_id=str(order.id), previous=previous, status=order.status)
        return order.status
