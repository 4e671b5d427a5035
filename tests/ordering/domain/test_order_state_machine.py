"""Tests for the Order state machine: manual transitions and payment confirmation."""

import pytest
from ordering.order.events import OrderPaid, OrderStatusChanged
from ordering.order.order import Order, OrderStatus, PaymentSource
from protean.exceptions import ValidationError


def _make_order():
    order = Order.create(
        order_id="b" * 24,
        number="E-000042",
        user_id="user-001",
        lines_data=[
            {
                "program_id": "prog-001",
                "program_title": "Охрана труда",
                "display_title": "Охрана труда",
                "hours": 16.0,
                "price": 2500.0,
                "quantity": 1,
                "line_amount": 2500.0,
                "learners": [{"last_name": "Иванов", "first_name": "Иван"}],
            }
        ],
        contact_email="learner@example.com",
    )
    order._events.clear()
    return order


def _order_at_state(target_status):
    order = _make_order()
    path = {
        OrderStatus.AWAITING_PAYMENT: [],
        OrderStatus.PAID: [OrderStatus.PAID],
        OrderStatus.IN_PROGRESS: [OrderStatus.PAID, OrderStatus.IN_PROGRESS],
        OrderStatus.COMPLETED: [OrderStatus.PAID, OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED],
        OrderStatus.CANCELLED: [OrderStatus.CANCELLED],
    }[target_status]
    for status in path:
        order.change_status(status.value)
    order._events.clear()
    return order


class TestValidTransitions:
    @pytest.mark.parametrize(
        "start, target",
        [
            (OrderStatus.AWAITING_PAYMENT, OrderStatus.PAID),
            (OrderStatus.AWAITING_PAYMENT, OrderStatus.CANCELLED),
            (OrderStatus.PAID, OrderStatus.IN_PROGRESS),
            (OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED),
        ],
    )
    def test_transition_allowed(self, start, target):
        order = _order_at_state(start)
        order.change_status(target.value)
        assert order.status == target.value

    def test_transition_raises_status_changed(self):
        order = _order_at_state(OrderStatus.PAID)
        order.change_status(OrderStatus.IN_PROGRESS.value)
        event = order._events[-1]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == OrderStatus.PAID.value
        assert event.new_status == OrderStatus.IN_PROGRESS.value

    def test_manual_payment_raises_order_paid(self):
        order = _make_order()
        order.change_status(OrderStatus.PAID.value)
        paid = [event for event in order._events if isinstance(event, OrderPaid)]
        assert len(paid) == 1
        assert paid[0].source == PaymentSource.MANUAL.value

    def test_status_changed_at_moves(self):
        order = _make_order()
        before = order.status_changed_at
        order.change_status(OrderStatus.CANCELLED.value)
        assert order.status_changed_at >= before


class TestInvalidTransitions:
    @pytest.mark.parametrize(
        "start, target",
        [
            (OrderStatus.AWAITING_PAYMENT, OrderStatus.IN_PROGRESS),
            (OrderStatus.AWAITING_PAYMENT, OrderStatus.COMPLETED),
            (OrderStatus.PAID, OrderStatus.AWAITING_PAYMENT),
            (OrderStatus.PAID, OrderStatus.CANCELLED),
            (OrderStatus.IN_PROGRESS, OrderStatus.PAID),
            (OrderStatus.COMPLETED, OrderStatus.IN_PROGRESS),
            (OrderStatus.CANCELLED, OrderStatus.PAID),
            (OrderStatus.CANCELLED, OrderStatus.AWAITING_PAYMENT),
        ],
    )
    def test_transition_rejected(self, start, target):
        order = _order_at_state(start)
        with pytest.raises(ValidationError) as exc:
            order.change_status(target.value)
        assert "status" in exc.value.messages
        assert order.status == start.value
        assert order._events == []

    def test_same_status_is_rejected(self):
        order = _order_at_state(OrderStatus.PAID)
        with pytest.raises(ValidationError):
            order.change_status(OrderStatus.PAID.value)

    def test_unknown_status_is_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.change_status("SHIPPED")


class TestConfirmPayment:
    def test_awaiting_payment_moves_to_paid(self):
        order = _make_order()
        assert order.confirm_payment("1234567890", PaymentSource.WEBHOOK.value) is True
        assert order.status == OrderStatus.PAID.value
        assert order.payment_id == "1234567890"

    def test_confirmation_raises_status_changed_and_paid(self):
        order = _make_order()
        order.confirm_payment("1234567890", PaymentSource.POLL.value)
        assert [type(event) for event in order._events] == [OrderStatusChanged, OrderPaid]
        assert order._events[1].source == PaymentSource.POLL.value
        assert order._events[1].payment_id == "1234567890"

    def test_repeated_confirmation_is_a_no_op(self):
        order = _make_order()
        order.confirm_payment("1234567890")
        order._events.clear()
        paid_at = order.status_changed_at

        assert order.confirm_payment("1234567890") is False
        assert order.confirm_payment("1234567890", PaymentSource.POLL.value) is False
        assert order.status == OrderStatus.PAID.value
        assert order.status_changed_at == paid_at
        assert order._events == []

    def test_cancelled_order_ignores_confirmation(self):
        order = _order_at_state(OrderStatus.CANCELLED)
        assert order.confirm_payment("1234567890") is False
        assert order.status == OrderStatus.CANCELLED.value
        assert order._events == []

    @pytest.mark.parametrize("start", [OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED])
    def test_later_stages_ignore_confirmation(self, start):
        order = _order_at_state(start)
        assert order.confirm_payment("1234567890") is False
        assert order.status == start.value

    def test_confirmation_without_payment_id_keeps_recorded_attempt(self):
        order = _make_order()
        order.record_card_payment("555", "key-555")
        order.confirm_payment()
        assert order.payment_id == "555"
