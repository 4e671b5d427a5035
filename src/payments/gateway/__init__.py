"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- TbankGateway for production (``PAYMENT_GATEWAY=tbank``)

Without ``PAYMENT_GATEWAY`` the fake is only used in the development and test
environments. Anywhere else the factory refuses to build a gateway, so an
unconfigured deployment cannot accept notifications signed with the fake
password.
"""

import os

from payments.gateway.errors import GatewayConfigurationError
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway

FAKE_ENVIRONMENTS = ("development", "test")

_current_gateway: PaymentGateway | None = None


def _environment() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").strip().lower()


def _build_default() -> PaymentGateway:
    selected = os.environ.get("PAYMENT_GATEWAY", "").strip().lower()
    if selected == "tbank":
        from payments.gateway.settings import TbankSettings
        from payments.gateway.tbank_adapter import TbankGateway

        return TbankGateway(TbankSettings.from_env())
    if selected == "fake" or (not selected and _environment() in FAKE_ENVIRONMENTS):
        return FakeGateway()
    if selected:
        raise GatewayConfigurationError(f"Unknown payment gateway: {selected}")
    raise GatewayConfigurationError(f"PAYMENT_GATEWAY must be set in the {_environment()} environment")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_default()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
