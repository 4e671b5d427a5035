"""Order deletion: command and handler. Only unpaid orders can be deleted."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from ordering.order.order import Order
from ordering.order.queries import get_order


@ordering.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)
    user_id = Identifier()


@ordering.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id, user_id=command.user_id)
        order.assert_deletable()
        repo._dao.delete(order)

        logger.info("Order deleted", order_id=str(order.id), number=order.number)
