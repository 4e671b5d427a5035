"""OrderNotification aggregate (CQRS): outbox record for order side effects.

Each record stands for one side effect of one order transition (the "order
created" email, or the training application plus "payment received" email).
``dedup_key`` is unique per order and kind, so a transition observed twice
never produces a second record, and a failed delivery can be retried on its
own without touching the order.

State Machine:
    PENDING → SENT
    PENDING → FAILED → (retry) → PENDING
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


class NotificationKind(Enum):
    ORDER_CREATED = "ORDER_CREATED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"


class NotificationStatus(Enum):
    PENDING = "Pending"
    SENT = "Sent"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.FAILED: {NotificationStatus.PENDING},  # Via retry
    NotificationStatus.SENT: set(),  # Terminal
}

MAX_ATTEMPTS = 5


@ordering.aggregate
class OrderNotification:
    order_id: Identifier(required=True)
    kind: String(choices=NotificationKind, required=True)
    dedup_key: String(required=True, max_length=100, unique=True)

    recipient: String(max_length=254)
    context_data: Text()  # JSON: data used to render the template
    document_ref: String(max_length=1000)
    message_id: String(max_length=255)

    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    attempts: Integer(default=0)
    max_attempts: Integer(default=MAX_ATTEMPTS)
    last_error: String(max_length=1000)

    sent_at: DateTime()
    created_at: DateTime()
    updated_at: DateTime()

    @staticmethod
    def dedup_key_for(order_id, kind) -> str:
        return f"{order_id}:{kind}"

    @classmethod
    def create(cls, order_id, kind, context_data=None):
        now = datetime.now(UTC)
        return cls(
            order_id=order_id,
            kind=kind,
            dedup_key=cls.dedup_key_for(order_id, kind),
            context_data=context_data,
            status=NotificationStatus.PENDING.value,
            attempts=0,
            created_at=now,
            updated_at=now,
        )

    def _assert_can_transition(self, target_status):
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def begin_attempt(self):
        if NotificationStatus(self.status) != NotificationStatus.PENDING:
            raise ValidationError({"status": ["Only pending notifications can be delivered"]})
        self.attempts = (self.attempts or 0) + 1
        self.updated_at = datetime.now(UTC)

    def record_document(self, document_ref):
        self.document_ref = document_ref
        self.updated_at = datetime.now(UTC)

    def mark_sent(self, recipient, message_id=None):
        self._assert_can_transition(NotificationStatus.SENT)

        now = datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.recipient = recipient
        self.message_id = message_id
        self.last_error = None
        self.sent_at = now
        self.updated_at = now

    def mark_failed(self, reason):
        self._assert_can_transition(NotificationStatus.FAILED)

        self.status = NotificationStatus.FAILED.value
        self.last_error = (reason or "Unknown failure")[:1000]
        self.updated_at = datetime.now(UTC)

    def retry(self):
        """Put a failed notification back in the queue."""
        if NotificationStatus(self.status) != NotificationStatus.FAILED:
            raise ValidationError({"status": ["Only failed notifications can be retried"]})
        if self.attempts >= self.max_attempts:
            raise ValidationError({"attempts": ["Maximum delivery attempts exceeded"]})

        self.status = NotificationStatus.PENDING.value
        self.updated_at = datetime.now(UTC)
