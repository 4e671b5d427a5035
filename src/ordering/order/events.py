"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
They drive the notification outbox and are published through the broker
in production.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderCreated:
    """A new order was created from a reconciled cart draft."""

    __version__ = 1

    order_id = Identifier(required=True)
    number = String(required=True)
    user_id = Identifier(required=True)
    customer_type = String(required=True)
    total_amount = Float(required=True)
    line_count = Integer(required=True)
    contact_email = String()
    created_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along one edge of its lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaid:
    """Payment for the order was confirmed. Raised once per order."""

    __version__ = 1

    order_id = Identifier(required=True)
    number = String(required=True)
    user_id = Identifier(required=True)
    total_amount = Float(required=True)
    payment_id = String()
    source = String(required=True)  # webhook, poll, manual
    contact_email = String()
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDetailsUpdated:
    """Contact details or the organization link were edited before payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    contact_email = String()
    contact_phone = String()
    organization_id = Identifier()
    updated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class CardPaymentInitiated:
    """A card payment form was opened at the provider for this order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_id = String(required=True)
    payment_key = String(required=True)
    amount = Float(required=True)
    initiated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class InvoiceIssued:
    """An invoice was issued to the order's organization."""

    __version__ = 1

    order_id = Identifier(required=True)
    invoice_id = String(required=True)
    pdf_url = String(required=True)
    amount = Float(required=True)
    issued_at = DateTime(required=True)
