"""Order details modification: command and handler.

Contact details and the organization link can only change while the order
is awaiting payment.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.queries import get_order


@ordering.command(part_of="Order")
class UpdateOrderDetails:
    order_id = Identifier(required=True)
    contact_email = String(max_length=254)
    contact_phone = String(max_length=32)
    organization_id = Identifier()
    user_id = Identifier()


@ordering.command_handler(part_of=Order)
class ModifyOrderHandler:
    @handle(UpdateOrderDetails)
    def update_details(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id, user_id=command.user_id)
        order.update_details(
            contact_email=command.contact_email,
            contact_phone=command.contact_phone,
            organization_id=command.organization_id,
        )
        repo.add(order)
