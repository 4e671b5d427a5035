"""Order aggregate (CQRS): the core of the ordering domain.

An order is created once from a reconciled cart draft. Its lines are frozen
at creation so later catalog price changes never reach a placed order, and
``total_amount`` always equals the sum of the line amounts.

State Machine:
    AWAITING_PAYMENT → PAID → IN_PROGRESS → COMPLETED
    AWAITING_PAYMENT → CANCELLED

Two paths move an order to PAID. ``change_status`` is the strict, manual
path: any edge outside the map is a validation error. ``confirm_payment`` is
the reconciliation path shared by the provider webhook and the status poll:
it is idempotent and silently refuses anything but AWAITING_PAYMENT, so
duplicate or late confirmations are harmless.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.order.events import (
    CardPaymentInitiated,
    InvoiceIssued,
    OrderCreated,
    OrderDetailsUpdated,
    OrderPaid,
    OrderStatusChanged,
)
from ordering.utils.money import amounts_match, round_money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class CustomerType(Enum):
    SELF = "SELF"
    INDIVIDUAL = "INDIVIDUAL"
    ORGANIZATION = "ORGANIZATION"


class PaymentSource(Enum):
    WEBHOOK = "webhook"
    POLL = "poll"
    MANUAL = "manual"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.AWAITING_PAYMENT: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.IN_PROGRESS},
    OrderStatus.IN_PROGRESS: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """A frozen snapshot of one purchased program (or sub-program).

    Price, hours and titles are copied from the catalog at creation time.
    ``learners`` holds the enrolled learners as a JSON array, one per seat.
    """

    program_id = Identifier(required=True)
    pricing_index = Integer()
    sub_program_index = Integer()
    program_title = String(required=True, max_length=500)
    sub_program_title = String(max_length=500)
    display_title = String(required=True, max_length=1000)
    hours = Float(default=0.0)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    line_amount = Float(required=True, min_value=0.0)
    learners = Text()  # JSON array of learner records

    @property
    def learner_list(self) -> list[dict]:
        return json.loads(self.learners) if self.learners else []


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    number = String(required=True, max_length=20, unique=True)
    user_id = Identifier(required=True)
    customer_type = String(choices=CustomerType, default=CustomerType.SELF.value)
    organization_id = Identifier()
    contact_email = String(max_length=254)
    contact_phone = String(max_length=32)

    # Training application fields
    training_start_date = Date()
    training_end_date = Date()
    training_form = String(max_length=100)
    training_language = String(max_length=100)
    head_position = String(max_length=255)
    head_full_name = String(max_length=255)
    contact_person_name = String(max_length=255)
    contact_person_position = String(max_length=255)

    status = String(choices=OrderStatus, default=OrderStatus.AWAITING_PAYMENT.value)
    status_changed_at = DateTime()
    total_amount = Float(required=True, min_value=0.0)
    lines = HasMany(OrderLine)

    # Most recent card payment attempt
    payment_id = String(max_length=64)
    payment_key = String(max_length=36)

    # At most one active invoice
    invoice_id = String(max_length=255)
    invoice_pdf_url = String(max_length=1000)
    incoming_invoice_url = String(max_length=1000)
    invoice_sent_at = DateTime()

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_equal_sum_of_lines(self):
        if self.lines and not amounts_match(self.total_amount, sum(line.line_amount for line in self.lines)):
            raise ValidationError({"total_amount": ["Order total must equal the sum of its line amounts"]})

    @invariant.post
    def organization_orders_must_reference_organization(self):
        if self.customer_type == CustomerType.ORGANIZATION.value and not self.organization_id:
            raise ValidationError({"organization_id": ["Organization is required for organization orders"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id,
        number,
        user_id,
        lines_data,
        customer_type=CustomerType.SELF.value,
        organization_id=None,
        contact_email=None,
        contact_phone=None,
        **training,
    ):
        """Create an order from reconciled line snapshots.

        Args:
            order_id: Pre-generated identifier (24 hex chars).
            number: Allocated ``E-NNNNNN`` order number.
            lines_data: List of dicts produced by ``CartReconciler.reconcile``.
            training: Optional training application fields.
        """
        if not lines_data:
            raise ValidationError({"lines": ["Order must have at least one line"]})

        now = datetime.now(UTC)
        lines = [
            OrderLine(**{**line, "learners": json.dumps(line.get("learners", []), ensure_ascii=False)})
            for line in lines_data
        ]
        total_amount = round_money(sum(line.line_amount for line in lines))

        order = cls(
            id=order_id,
            number=number,
            user_id=user_id,
            customer_type=customer_type,
            organization_id=organization_id if customer_type == CustomerType.ORGANIZATION.value else None,
            contact_email=contact_email,
            contact_phone=contact_phone,
            status=OrderStatus.AWAITING_PAYMENT.value,
            status_changed_at=now,
            total_amount=total_amount,
            lines=lines,
            created_at=now,
            updated_at=now,
            **training,
        )
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                number=number,
                user_id=str(user_id),
                customer_type=customer_type,
                total_amount=total_amount,
                line_count=len(lines),
                contact_email=contact_email,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_awaiting_payment(self, action):
        if OrderStatus(self.status) != OrderStatus.AWAITING_PAYMENT:
            raise ValidationError({"status": [f"Cannot {action} an order in {self.status} state"]})

    def _move_to(self, target_status, now):
        previous = self.status
        self.status = target_status.value
        self.status_changed_at = now
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                number=self.number,
                previous_status=previous,
                new_status=target_status.value,
                changed_at=now,
            )
        )

    def _raise_paid(self, payment_id, source, now):
        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                number=self.number,
                user_id=str(self.user_id),
                total_amount=self.total_amount,
                payment_id=payment_id,
                source=source,
                contact_email=self.contact_email,
                paid_at=now,
            )
        )

    @property
    def is_locked(self) -> bool:
        return OrderStatus(self.status) != OrderStatus.AWAITING_PAYMENT

    def assert_payable(self):
        self._assert_awaiting_payment("pay for")

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def change_status(self, new_status):
        """Move along one legal edge. Illegal edges raise ``ValidationError``."""
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown status {new_status}"]}) from None

        self._assert_can_transition(target)
        now = datetime.now(UTC)
        self._move_to(target, now)
        if target == OrderStatus.PAID:
            self._raise_paid(self.payment_id, PaymentSource.MANUAL.value, now)

    def confirm_payment(self, payment_id=None, source=PaymentSource.WEBHOOK.value):
        """Fold a confirmed provider payment into the order.

        Returns True only when the order actually moved to PAID. Already paid
        orders are left as they are; cancelled or later-stage orders ignore the
        confirmation.
        """
        if OrderStatus(self.status) != OrderStatus.AWAITING_PAYMENT:
            return False

        now = datetime.now(UTC)
        if payment_id:
            self.payment_id = str(payment_id)
        self._move_to(OrderStatus.PAID, now)
        self._raise_paid(self.payment_id, source, now)
        return True

    # -------------------------------------------------------------------
    # Payment references
    # -------------------------------------------------------------------
    def record_card_payment(self, payment_id, payment_key):
        """Remember the latest card payment attempt for polling."""
        self._assert_awaiting_payment("start a payment for")

        now = datetime.now(UTC)
        self.payment_id = str(payment_id)
        self.payment_key = payment_key
        self.updated_at = now
        self.raise_(
            CardPaymentInitiated(
                order_id=str(self.id),
                payment_id=str(payment_id),
                payment_key=payment_key,
                amount=self.total_amount,
                initiated_at=now,
            )
        )

    @property
    def has_invoice(self) -> bool:
        return bool(self.invoice_id and self.invoice_pdf_url)

    def record_invoice(self, invoice_id, pdf_url, incoming_invoice_url=None):
        """Cache the issued invoice. An order keeps at most one."""
        if self.has_invoice:
            raise ValidationError({"invoice_id": ["An invoice has already been issued for this order"]})
        self._assert_awaiting_payment("issue an invoice for")

        now = datetime.now(UTC)
        self.invoice_id = invoice_id
        self.invoice_pdf_url = pdf_url
        self.incoming_invoice_url = incoming_invoice_url
        self.invoice_sent_at = now
        self.updated_at = now
        self.raise_(
            InvoiceIssued(
                order_id=str(self.id),
                invoice_id=invoice_id,
                pdf_url=pdf_url,
                amount=self.total_amount,
                issued_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Editing and deletion (only before payment)
    # -------------------------------------------------------------------
    def update_details(self, contact_email=None, contact_phone=None, organization_id=None):
        self._assert_awaiting_payment("edit")

        if contact_email is not None:
            self.contact_email = contact_email.strip() or None
        if contact_phone is not None:
            self.contact_phone = contact_phone.strip() or None
        if organization_id is not None:
            if self.customer_type != CustomerType.ORGANIZATION.value:
                raise ValidationError({"organization_id": ["Only organization orders can reference an organization"]})
            self.organization_id = organization_id

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            OrderDetailsUpdated(
                order_id=str(self.id),
                contact_email=self.contact_email,
                contact_phone=self.contact_phone,
                organization_id=str(self.organization_id) if self.organization_id else None,
                updated_at=now,
            )
        )

    def assert_deletable(self):
        self._assert_awaiting_payment("delete")
