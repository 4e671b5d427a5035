"""Tests for the card acquiring client against a mocked provider."""

import json

import httpx
import pytest
from payments.gateway.errors import GatewayConfigurationError, GatewayError
from payments.gateway.port import CardPaymentRequest
from payments.gateway.settings import EACQ_BASE_TEST, TbankSettings
from payments.gateway.signing import build_token
from payments.gateway.tbank_adapter import TbankGateway
from protean.exceptions import ValidationError

SETTINGS = TbankSettings(terminal_key="TestTerminal", password="secret", eacq_base_url=EACQ_BASE_TEST)


def _gateway(handler, settings=SETTINGS):
    return TbankGateway(settings, transport=httpx.MockTransport(handler))


def _request(**overrides):
    fields = {
        "order_key": "a" * 24 + "_0000000123",
        "amount_kopecks": 500000,
        "description": "Оплата заказа E-000001",
        "success_url": "https://api.example.com/orders/x/payment-success",
        "fail_url": "https://api.example.com/orders/x/payment-fail",
        "notification_url": "https://api.example.com/payment/tbank-eacq/notification",
    }
    fields.update(overrides)
    return CardPaymentRequest(**fields)


class TestInit:
    def test_init_sends_signed_body(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"Success": True, "PaymentId": 8742591, "PaymentURL": "https://pay.example/x", "Status": "NEW"},
            )

        result = _gateway(handler).init_card_payment(_request())

        assert seen["url"] == f"{EACQ_BASE_TEST}/v2/Init"
        body = seen["body"]
        assert body["TerminalKey"] == "TestTerminal"
        assert body["Amount"] == 500000
        assert body["OrderId"] == "a" * 24 + "_0000000123"
        assert body["NotificationURL"].endswith("/payment/tbank-eacq/notification")
        assert body["Token"] == build_token(body, "secret")

        assert result.payment_id == "8742591"
        assert result.payment_url == "https://pay.example/x"
        assert result.status == "NEW"

    def test_description_is_truncated(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"Success": True, "PaymentId": 1, "PaymentURL": "https://pay.example/1"})

        _gateway(handler).init_card_payment(_request(description="x" * 300))
        assert len(seen["body"]["Description"]) == 140

    def test_provider_rejection_surfaces_message(self):
        def handler(request):
            return httpx.Response(200, json={"Success": False, "ErrorCode": "204", "Message": "Неверный токен"})

        with pytest.raises(GatewayError) as exc:
            _gateway(handler).init_card_payment(_request())
        assert exc.value.message == "Неверный токен"
        assert exc.value.error_code == "204"

    def test_missing_payment_url(self):
        def handler(request):
            return httpx.Response(200, json={"Success": True, "PaymentId": 1})

        with pytest.raises(GatewayError):
            _gateway(handler).init_card_payment(_request())

    def test_non_json_response(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        with pytest.raises(GatewayError) as exc:
            _gateway(handler).init_card_payment(_request())
        assert "Bad Gateway" in exc.value.message

    def test_timeout_becomes_gateway_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(GatewayError) as exc:
            _gateway(handler).init_card_payment(_request(), timeout=0.5)
        assert exc.value.status_code == 504

    def test_connection_error_becomes_gateway_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GatewayError) as exc:
            _gateway(handler).init_card_payment(_request())
        assert exc.value.status_code == 502

    def test_invalid_amount_fails_fast(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        with pytest.raises(ValidationError):
            _gateway(handler).init_card_payment(_request(amount_kopecks=0))
        assert calls == []

    def test_missing_credentials(self):
        def handler(request):
            return httpx.Response(200, json={})

        with pytest.raises(GatewayConfigurationError):
            _gateway(handler, TbankSettings()).init_card_payment(_request())


class TestStatusQueries:
    def test_get_state(self):
        def handler(request):
            body = json.loads(request.content)
            assert request.url.path == "/v2/GetState"
            return httpx.Response(200, json={"Success": True, "PaymentId": body["PaymentId"], "Status": "CONFIRMED"})

        attempt = _gateway(handler).get_card_payment_state("8742591")
        assert attempt.external_id == "8742591"
        assert attempt.is_confirmed

    def test_check_order_lists_attempts(self):
        def handler(request):
            assert request.url.path == "/v2/CheckOrder"
            return httpx.Response(
                200,
                json={
                    "Success": True,
                    "OrderId": "key",
                    "Payments": [
                        {"PaymentId": 1, "Status": "REJECTED"},
                        {"PaymentId": 2, "Status": "CONFIRMED"},
                    ],
                },
            )

        attempts = _gateway(handler).check_card_order("key")
        assert [(attempt.external_id, attempt.raw_status) for attempt in attempts] == [
            ("1", "REJECTED"),
            ("2", "CONFIRMED"),
        ]

    def test_check_order_without_payments(self):
        def handler(request):
            return httpx.Response(200, json={"Success": True, "OrderId": "key"})

        assert _gateway(handler).check_card_order("key") == []


class TestVerifyNotification:
    def test_verify_with_terminal_password(self):
        gateway = _gateway(lambda request: httpx.Response(200))
        payload = {"TerminalKey": "TestTerminal", "OrderId": "key", "Success": True, "Status": "CONFIRMED"}
        payload["Token"] = build_token(payload, "secret")
        assert gateway.verify_notification(payload) is True

        payload["Status"] = "REJECTED"
        assert gateway.verify_notification(payload) is False
