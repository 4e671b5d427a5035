"""In-memory cart for development and testing."""

from protean.exceptions import ValidationError

from ordering.cart.port import CartPort, CartSnapshot, EnrichedCartItem

MAX_CART_ITEMS = 20
MAX_QUANTITY_PER_ITEM = 100


class FakeCart(CartPort):
    def __init__(self) -> None:
        self.carts: dict[str, list[EnrichedCartItem]] = {}
        self.calls: list[dict] = []

    def add_item(self, user_id: str, item: EnrichedCartItem) -> None:
        """Put an item in a user's cart, replacing one with the same key."""
        if not 1 <= item.quantity <= MAX_QUANTITY_PER_ITEM:
            raise ValidationError({"quantity": [f"Quantity must be between 1 and {MAX_QUANTITY_PER_ITEM}"]})

        items = [existing for existing in self.carts.get(user_id, []) if existing.key != item.key]
        if len(items) >= MAX_CART_ITEMS:
            raise ValidationError({"cart": [f"Cart cannot have more than {MAX_CART_ITEMS} items"]})
        items.append(item)
        self.carts[user_id] = items

    def get_enriched_cart(self, user_id: str) -> CartSnapshot:
        self.calls.append({"method": "get_enriched_cart", "user_id": user_id})
        items = tuple(self.carts.get(user_id, []))
        total = round(sum(item.price * item.quantity for item in items), 2)
        return CartSnapshot(items=items, total_amount=total)

    def clear_cart(self, user_id: str) -> None:
        self.calls.append({"method": "clear_cart", "user_id": user_id})
        self.carts.pop(user_id, None)
