"""Application tests for creating an order from the cart."""

import json

import pytest
from ordering.cart.port import EnrichedCartItem
from ordering.order.creation import CreateOrderFromCart
from ordering.order.order import CustomerType, Order, OrderStatus
from ordering.order.queries import list_user_orders
from protean import current_domain
from protean.exceptions import ValidationError

SEMINAR = EnrichedCartItem(
    program_id="prog-300",
    program_title="Первая помощь",
    hours=8,
    price=1200.0,
    quantity=3,
    pricing_index=0,
    category_type="qualification_upgrade",
)


class TestCreateOrderFromCart:
    def test_first_order_gets_first_number(self, place_order):
        order_id = place_order()
        order = current_domain.repository_for(Order).get(order_id)
        assert order.number == "E-000001"
        assert order.status == OrderStatus.AWAITING_PAYMENT.value
        assert order.total_amount == 5000.0

    def test_numbers_increase(self, place_order):
        first = place_order(user_id="user-001")
        second = place_order(user_id="user-002")
        repo = current_domain.repository_for(Order)
        assert repo.get(first).number == "E-000001"
        assert repo.get(second).number == "E-000002"

    def test_order_id_fits_payment_key(self, place_order):
        order_id = place_order()
        assert len(order_id) == 24

    def test_cart_is_cleared(self, place_order, cart):
        place_order()
        assert "user-001" not in cart.carts
        assert cart.calls[-1] == {"method": "clear_cart", "user_id": "user-001"}

    def test_lines_and_learners_are_persisted(self, place_order, program):
        order_id = place_order(items=[program, SEMINAR])
        order = current_domain.repository_for(Order).get(order_id)
        assert order.total_amount == 8600.0
        seminar = next(line for line in order.lines if line.program_id == "prog-300")
        assert seminar.quantity == 3
        assert len(seminar.learner_list) == 3
        assert seminar.display_title.endswith("«Первая помощь»")

    def test_training_fields_are_stored(self, place_order):
        order_id = place_order(
            training=json.dumps({"training_form": "Заочная", "training_start_date": "2026-11-02", "unknown": "x"})
        )
        order = current_domain.repository_for(Order).get(order_id)
        assert order.training_form == "Заочная"
        assert str(order.training_start_date) == "2026-11-02"

    def test_organization_order(self, place_order):
        order_id = place_order(customer_type=CustomerType.ORGANIZATION.value, organization_id="org-001")
        order = current_domain.repository_for(Order).get(order_id)
        assert order.customer_type == CustomerType.ORGANIZATION.value
        assert str(order.organization_id) == "org-001"


class TestRejectedCreation:
    def test_empty_cart(self, cart, draft_line, program):
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                CreateOrderFromCart(
                    user_id="user-001",
                    lines=json.dumps([draft_line(program)]),
                    total_amount=5000.0,
                ),
                asynchronous=False,
            )
        assert exc.value.messages == {"cart": ["Cart is empty"]}

    def test_tampered_line_amount_leaves_no_trace(self, cart, draft_line, program):
        cart.add_item("user-001", program)
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                CreateOrderFromCart(
                    user_id="user-001",
                    lines=json.dumps([draft_line(program, line_amount=5500.0)]),
                    total_amount=5500.0,
                ),
                asynchronous=False,
            )

        assert exc.value.messages["lines"] == [
            "Line 1: line amount 5500.00 does not match price × quantity (5000.00)"
        ]
        assert list_user_orders("user-001") == []
        assert cart.carts["user-001"] == [program]

    def test_failed_creation_does_not_consume_a_number(self, cart, draft_line, program, place_order):
        cart.add_item("user-009", program)
        with pytest.raises(ValidationError):
            current_domain.process(
                CreateOrderFromCart(
                    user_id="user-009",
                    lines=json.dumps([draft_line(program, price=4000.0, line_amount=4000.0)]),
                    total_amount=4000.0,
                ),
                asynchronous=False,
            )

        order_id = place_order()
        assert current_domain.repository_for(Order).get(order_id).number == "E-000001"

    def test_organization_without_organization_id(self, place_order):
        with pytest.raises(ValidationError) as exc:
            place_order(customer_type=CustomerType.ORGANIZATION.value)
        assert "organization_id" in exc.value.messages
