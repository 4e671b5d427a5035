"""Cart port (abstract interface).

The cart line-item store lives outside this service. At order creation it is
consulted read-only for the authoritative, catalog-priced items and cleared
once the order is persisted.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EnrichedCartItem:
    """A cart line resolved against the current catalog price and hours."""

    program_id: str
    program_title: str
    hours: float
    price: float
    quantity: int
    pricing_index: int | None = None
    sub_program_index: int | None = None
    sub_program_title: str | None = None
    category_type: str | None = None

    @property
    def key(self) -> tuple[str, int | None, int | None]:
        return (self.program_id, self.pricing_index, self.sub_program_index)

    @property
    def line_amount(self) -> float:
        return round(self.price * self.quantity, 2)


@dataclass(frozen=True)
class CartSnapshot:
    items: tuple[EnrichedCartItem, ...]
    total_amount: float

    @property
    def is_empty(self) -> bool:
        return not self.items


class CartPort(ABC):
    @abstractmethod
    def get_enriched_cart(self, user_id: str) -> CartSnapshot:
        """Return the user's live cart with catalog-resolved prices."""
        ...

    @abstractmethod
    def clear_cart(self, user_id: str) -> None:
        """Empty the user's cart."""
        ...
