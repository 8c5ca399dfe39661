"""Cart service contract.

The cart is owned by another service; the orchestrator only ever reads a
snapshot of it and asks for it to be emptied once the order is committed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from fulfillment.domain.model.value_objects import Money


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int
    unit_price: Money


@dataclass(frozen=True)
class CartSnapshot:
    user_id: str
    items: list[CartItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_price(self) -> Money:
        if not self.items:
            return Money.zero()
        total = Money.zero(self.items[0].unit_price.currency)
        for item in self.items:
            total = total + item.unit_price * item.quantity
        return total


class CartService(ABC):

    @abstractmethod
    def get_cart(self, user_id: str) -> CartSnapshot:
        """Return the user's current cart (empty snapshot if none)."""

    @abstractmethod
    def clear_cart(self, user_id: str) -> None:
        """Empty the user's cart.  Idempotent."""
