"""Application tests for starting payments: card form, SBP link and invoice."""

import pytest
from ordering.order.order import Order, OrderStatus
from ordering.order.queries import get_order
from ordering.order.status import UpdateOrderStatus
from ordering.payment.card import InitiateCardPayment
from ordering.payment.invoicing import IssueInvoice, get_invoice_status
from ordering.payment.sbp import CreateSbpPaymentLink, get_sbp_link_status
from payments.gateway.eacq import order_id_from_key
from payments.gateway.errors import GatewayError
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _pay_card(order_id, **kwargs):
    return current_domain.process(InitiateCardPayment(order_id=order_id, **kwargs), asynchronous=False)


def _issue_invoice(order_id, **overrides):
    fields = {"payer_name": "ООО Ромашка", "payer_inn": "7701234567", "payer_kpp": "770101001"}
    fields.update(overrides)
    return current_domain.process(IssueInvoice(order_id=order_id, **fields), asynchronous=False)


class TestInitiateCardPayment:
    def test_returns_payment_form(self, place_order, gateway):
        order_id = place_order()
        result = _pay_card(order_id)
        assert result["payment_url"].startswith("https://pay.fake.local/")
        assert result["status"] == "NEW"

    def test_records_latest_attempt(self, place_order, gateway):
        order_id = place_order()
        result = _pay_card(order_id)
        order = get_order(order_id)
        assert order.payment_id == result["payment_id"]
        assert order_id_from_key(order.payment_key) == order_id
        assert len(order.payment_key) <= 36
        assert order.status == OrderStatus.AWAITING_PAYMENT.value

    def test_sends_amount_in_kopecks(self, place_order, gateway):
        order_id = place_order()
        _pay_card(order_id, timeout=3.5)
        call = gateway.calls[-1]
        assert call["method"] == "init_card_payment"
        assert call["amount_kopecks"] == 500000
        assert call["description"] == "Оплата заказа E-000001"
        assert call["timeout"] == 3.5

    def test_each_attempt_gets_a_fresh_key(self, place_order, gateway):
        order_id = place_order()
        _pay_card(order_id)
        _pay_card(order_id)
        keys = [call["order_key"] for call in gateway.calls if call["method"] == "init_card_payment"]
        assert len(keys) == 2
        assert all(order_id_from_key(key) == order_id for key in keys)

    def test_paid_order_cannot_be_paid_again(self, place_order, gateway):
        order_id = place_order()
        current_domain.process(UpdateOrderStatus(order_id=order_id, status="PAID"), asynchronous=False)
        with pytest.raises(ValidationError):
            _pay_card(order_id)
        assert gateway.calls == []

    def test_provider_failure_leaves_order_unchanged(self, place_order, gateway):
        order_id = place_order()
        gateway.configure(should_succeed=False, failure_reason="Terminal blocked")
        with pytest.raises(GatewayError) as exc:
            _pay_card(order_id)
        assert exc.value.message == "Terminal blocked"

        order = get_order(order_id)
        assert order.payment_id is None
        assert order.status == OrderStatus.AWAITING_PAYMENT.value


class TestCreateSbpPaymentLink:
    def test_returns_link(self, place_order, gateway):
        order_id = place_order()
        result = current_domain.process(CreateSbpPaymentLink(order_id=order_id), asynchronous=False)
        assert result["qr_id"].startswith("fake_qr_")
        assert result["payment_url"].endswith(result["qr_id"])
        assert result["due_date"]

    def test_link_status(self, place_order, gateway):
        order_id = place_order()
        result = current_domain.process(CreateSbpPaymentLink(order_id=order_id), asynchronous=False)
        assert get_sbp_link_status(result["qr_id"]) == {"qr_id": result["qr_id"], "status": "NEW"}

    def test_link_does_not_change_order(self, place_order, gateway):
        order_id = place_order()
        current_domain.process(CreateSbpPaymentLink(order_id=order_id), asynchronous=False)
        assert get_order(order_id).status == OrderStatus.AWAITING_PAYMENT.value

    def test_cancelled_order_gets_no_link(self, place_order, gateway):
        order_id = place_order()
        current_domain.process(UpdateOrderStatus(order_id=order_id, status="CANCELLED"), asynchronous=False)
        with pytest.raises(ValidationError):
            current_domain.process(CreateSbpPaymentLink(order_id=order_id), asynchronous=False)


class TestIssueInvoice:
    def test_issue_invoice(self, place_order, gateway):
        order_id = place_order(customer_type="ORGANIZATION", organization_id="org-001")
        result = _issue_invoice(order_id)
        assert result["cached"] is False
        assert result["pdf_url"].endswith(".pdf")

        order = get_order(order_id)
        assert order.invoice_id == result["invoice_id"]
        assert order.invoice_sent_at is not None

    def test_invoice_number_is_order_digits(self, place_order, gateway):
        order_id = place_order()
        _issue_invoice(order_id)
        assert gateway.calls[-1]["invoice_number"] == "000001"
        assert gateway.calls[-1]["items"] == 1

    def test_second_request_returns_cached_invoice(self, place_order, gateway):
        order_id = place_order()
        first = _issue_invoice(order_id)
        second = _issue_invoice(order_id)

        assert second["cached"] is True
        assert second["invoice_id"] == first["invoice_id"]
        assert len([call for call in gateway.calls if call["method"] == "send_invoice"]) == 1

    def test_contact_email_is_required(self, place_order, gateway):
        order_id = place_order(contact_email=None)
        with pytest.raises(ValidationError) as exc:
            _issue_invoice(order_id)
        assert "contact_email" in exc.value.messages
        assert gateway.calls == []

    def test_invoice_status(self, place_order, gateway):
        order_id = place_order()
        result = _issue_invoice(order_id)
        assert get_invoice_status(order_id) == {"invoice_id": result["invoice_id"], "status": "SUBMITTED"}

    def test_status_without_invoice(self, place_order, gateway):
        order_id = place_order()
        with pytest.raises(ValidationError):
            get_invoice_status(order_id)

    def test_provider_failure_caches_nothing(self, place_order, gateway):
        order_id = place_order()
        gateway.configure(should_succeed=False)
        with pytest.raises(GatewayError):
            _issue_invoice(order_id)
        assert current_domain.repository_for(Order).get(order_id).invoice_id is None


class TestPaymentOwnership:
    def test_card_payment_for_another_users_order_is_not_found(self, place_order, gateway):
        order_id = place_order(user_id="user-001")
        with pytest.raises(ObjectNotFoundError):
            _pay_card(order_id, user_id="user-002")
        assert gateway.calls == []
        assert get_order(order_id).payment_id is None

    def test_owner_can_pay(self, place_order, gateway):
        order_id = place_order(user_id="user-001")
        assert _pay_card(order_id, user_id="user-001")["payment_url"]

    def test_sbp_link_for_another_users_order_is_not_found(self, place_order, gateway):
        order_id = place_order(user_id="user-001")
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(CreateSbpPaymentLink(order_id=order_id, user_id="user-002"), asynchronous=False)
        assert gateway.calls == []

    def test_invoice_status_for_another_user_is_not_found(self, place_order, gateway):
        order_id = place_order(user_id="user-001")
        _issue_invoice(order_id)
        with pytest.raises(ObjectNotFoundError):
            get_invoice_status(order_id, user_id="user-002")
