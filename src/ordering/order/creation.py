"""Order creation from the user's cart: command and handler.

The client submits a draft (lines, learners, declared totals). The draft is
reconciled against the live cart first; an order number is allocated only
once reconciliation has succeeded.
"""

import json
from uuid import uuid4

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart import get_cart
from ordering.cart.reconciler import CartReconciler, DraftLine, OrderDraft
from ordering.domain import logger, ordering
from ordering.order.numbering import allocate_order_number
from ordering.order.order import CustomerType, Order

TRAINING_FIELDS = (
    "training_start_date",
    "training_end_date",
    "training_form",
    "training_language",
    "head_position",
    "head_full_name",
    "contact_person_name",
    "contact_person_position",
)


def new_order_id() -> str:
    # 24 hex chars leave room for "_<10 digits>" within the provider's 36-char OrderId
    return uuid4().hex[:24]


@ordering.command(part_of="Order")
class CreateOrderFromCart:
    user_id = Identifier(required=True)
    customer_type = String(choices=CustomerType, default=CustomerType.SELF.value)
    organization_id = Identifier()
    contact_email = String(max_length=254)
    contact_phone = String(max_length=32)
    lines = Text(required=True)  # JSON: list of draft line dicts
    total_amount = Float(required=True)
    training = Text()  # JSON: training application fields


@ordering.command_handler(part_of=Order)
class CreateOrderFromCartHandler:
    @handle(CreateOrderFromCart)
    def create_order_from_cart(self, command):
        lines_data = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
        training_data = json.loads(command.training) if isinstance(command.training, str) else command.training or {}

        if command.customer_type == CustomerType.ORGANIZATION.value and not command.organization_id:
            raise ValidationError({"organization_id": ["organization_id is required for organization customer"]})

        cart_store = get_cart()
        cart = cart_store.get_enriched_cart(str(command.user_id))
        draft = OrderDraft(
            lines=tuple(DraftLine.from_dict(line) for line in lines_data or []),
            total_amount=command.total_amount,
        )
        line_snapshots = CartReconciler().reconcile(draft, cart)

        order = Order.create(
            order_id=new_order_id(),
            number=allocate_order_number(),
            user_id=command.user_id,
            lines_data=line_snapshots,
            customer_type=command.customer_type,
            organization_id=command.organization_id,
            contact_email=(command.contact_email or "").strip() or None,
            contact_phone=(command.contact_phone or "").strip() or None,
            **{name: training_data[name] for name in TRAINING_FIELDS if training_data.get(name)},
        )
        current_domain.repository_for(Order).add(order)
        cart_store.clear_cart(str(command.user_id))

        logger.info(
            "Order created",
            order_id=str(order.id),
            number=order.number,
            total_amount=order.total_amount,
        )
        return str(order.id)
