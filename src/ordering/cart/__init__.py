"""Cart collaborator factory.

Provides get_cart() / set_cart() to swap the cart store implementation.
Defaults to the in-memory FakeCart.
"""

from ordering.cart.fake_adapter import FakeCart
from ordering.cart.port import CartPort

_current_cart: CartPort | None = None


def get_cart() -> CartPort:
    """Return the current cart store. Defaults to FakeCart."""
    global _current_cart
    if _current_cart is None:
        _current_cart = FakeCart()
    return _current_cart


def set_cart(cart: CartPort) -> None:
    """Override the active cart store (useful for tests)."""
    global _current_cart
    _current_cart = cart


def reset_cart() -> None:
    """Reset to default cart store."""
    global _current_cart
    _current_cart = None
