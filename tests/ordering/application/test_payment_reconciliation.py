"""Application tests for payment reconciliation: webhook confirmation and status polling."""

import pytest
from ordering.notification.notification import NotificationKind
from ordering.notification.retry import list_order_notifications
from ordering.order.order import Order, OrderStatus, PaymentSource
from ordering.order.queries import get_order
from ordering.order.status import UpdateOrderStatus
from ordering.payment.card import InitiateCardPayment
from ordering.payment.reconciliation import ConfirmOrderPayment, SyncOrderPaymentStatus, apply_payment_confirmation
from payments.gateway.errors import GatewayError
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


def _start_card_payment(order_id):
    return current_domain.process(InitiateCardPayment(order_id=order_id), asynchronous=False)["payment_id"]


def _sync(order_id, **kwargs):
    return current_domain.process(SyncOrderPaymentStatus(order_id=order_id, **kwargs), asynchronous=False)


def _confirm(order_id, payment_id, source=PaymentSource.WEBHOOK.value):
    return current_domain.process(
        ConfirmOrderPayment(order_id=order_id, payment_id=payment_id, source=source),
        asynchronous=False,
    )


class TestConfirmOrderPayment:
    def test_confirmation_pays_order(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)

        assert _confirm(order_id, payment_id) is True
        order = get_order(order_id)
        assert order.status == OrderStatus.PAID.value
        assert order.payment_id == payment_id

    def test_duplicate_confirmations_are_harmless(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)

        results = [_confirm(order_id, payment_id) for _ in range(3)]
        assert results == [True, False, False]
        assert get_order(order_id).status == OrderStatus.PAID.value

    def test_cancelled_order_stays_cancelled(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)
        current_domain.process(UpdateOrderStatus(order_id=order_id, status="CANCELLED"), asynchronous=False)

        assert _confirm(order_id, payment_id) is False
        assert get_order(order_id).status == OrderStatus.CANCELLED.value

    def test_unknown_order(self, gateway):
        with pytest.raises(ObjectNotFoundError):
            _confirm("f" * 24, "1234567890")


class TestSyncOrderPaymentStatus:
    def test_pending_payment_changes_nothing(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)

        result = _sync(order_id)
        assert result == {
            "status": OrderStatus.AWAITING_PAYMENT.value,
            "updated": False,
            "payments": [{"payment_id": payment_id, "status": "NEW"}],
        }

    def test_confirmed_payment_pays_order(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)
        gateway.confirm(payment_id)

        result = _sync(order_id)
        assert result["status"] == OrderStatus.PAID.value
        assert result["updated"] is True
        assert get_order(order_id).payment_id == payment_id

    def test_poll_after_webhook_is_a_no_op(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)
        gateway.confirm(payment_id)
        _confirm(order_id, payment_id)

        result = _sync(order_id)
        assert result["status"] == OrderStatus.PAID.value
        assert result["updated"] is False

    def test_webhook_after_poll_is_a_no_op(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)
        gateway.confirm(payment_id)
        _sync(order_id)

        assert _confirm(order_id, payment_id) is False
        assert get_order(order_id).status == OrderStatus.PAID.value

    def test_latest_attempt_is_polled(self, place_order, gateway):
        order_id = place_order()
        _start_card_payment(order_id)
        latest = _start_card_payment(order_id)
        gateway.confirm(latest)

        result = _sync(order_id)
        assert result["updated"] is True
        assert latest in [payment["payment_id"] for payment in result["payments"]]
        assert get_order(order_id).payment_id == latest

    def test_order_without_card_attempt(self, place_order, gateway):
        order_id = place_order()
        result = _sync(order_id)
        assert result == {"status": OrderStatus.AWAITING_PAYMENT.value, "updated": False, "payments": []}
        assert gateway.calls == []

    def test_provider_timeout_leaves_order_unchanged(self, place_order, gateway):
        order_id = place_order()
        _start_card_payment(order_id)
        gateway.configure(should_succeed=False, failure_reason="T-Bank EACQ: request timed out")

        with pytest.raises(GatewayError):
            _sync(order_id, timeout=0.5)
        assert get_order(order_id).status == OrderStatus.AWAITING_PAYMENT.value
        assert gateway.calls[-1]["timeout"] == 0.5


class TestConcurrentConfirmation:
    def test_stale_copy_becomes_a_no_op(self, place_order, gateway, email, documents):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)
        repo = current_domain.repository_for(Order)
        webhook_copy = repo.get(order_id)
        poll_copy = repo.get(order_id)

        assert apply_payment_confirmation(webhook_copy, payment_id, PaymentSource.WEBHOOK.value) is True
        assert apply_payment_confirmation(poll_copy, payment_id, PaymentSource.POLL.value) is False

        assert get_order(order_id).status == OrderStatus.PAID.value
        paid_notifications = [
            notification
            for notification in list_order_notifications(order_id)
            if notification.kind == NotificationKind.PAYMENT_CONFIRMED.value
        ]
        assert len(paid_notifications) == 1

    def test_stale_copy_of_cancelled_order_stays_cancelled(self, place_order, gateway):
        order_id = place_order()
        payment_id = _start_card_payment(order_id)
        stale = current_domain.repository_for(Order).get(order_id)
        current_domain.process(UpdateOrderStatus(order_id=order_id, status="CANCELLED"), asynchronous=False)

        assert apply_payment_confirmation(stale, payment_id, PaymentSource.POLL.value) is False
        assert get_order(order_id).status == OrderStatus.CANCELLED.value


class TestOwnership:
    def test_sync_of_another_users_order_is_not_found(self, place_order, gateway):
        order_id = place_order()
        _start_card_payment(order_id)
        with pytest.raises(ObjectNotFoundError):
            _sync(order_id, user_id="someone-else")
        assert [call["method"] for call in gateway.calls] == ["init_card_payment"]

    def test_owner_can_sync(self, place_order, gateway):
        order_id = place_order()
        _start_card_payment(order_id)
        assert _sync(order_id, user_id="user-001")["updated"] is False
