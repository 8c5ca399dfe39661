"""InventoryRecord — stock and reservations per (product, warehouse).

A product is stocked in any number of warehouses; each pair has its own
record knowing the physical quantity on hand and how much of it is held
by in-flight or placed orders.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from fulfillment.domain.exceptions import ValidationError


@dataclass
class InventoryRecord:
    """Stock of one product at one warehouse.

    Invariants:
    - ``0 <= reserved_quantity <= quantity``
    - ``available_quantity`` is never reported below zero
    """

    product_id: str
    warehouse_id: str
    quantity: int
    reserved_quantity: int = 0
    deleted_at: datetime | None = None

    @property
    def available_quantity(self) -> int:
        return max(0, self.quantity - self.reserved_quantity)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def can_reserve(self, quantity: int) -> bool:
        return not self.is_deleted and self.reserved_quantity + quantity <= self.quantity

    def reserve(self, quantity: int) -> None:
        """Hold stock for an order.

        Raises ValidationError if the warehouse cannot cover the request.
        """
        if quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")
        if not self.can_reserve(quantity):
            raise ValidationError(
                f"Insufficient stock for {self.product_id} at {self.warehouse_id} "
                f"(need {quantity}, have {self.available_quantity} available)"
            )
        self.reserved_quantity += quantity

    def release(self, quantity: int) -> int:
        """Give back previously reserved stock, floored at zero.

        Returns how much was actually released.
        """
        if quantity <= 0:
            raise ValidationError("Release quantity must be positive")
        released = min(quantity, self.reserved_quantity)
        self.reserved_quantity -= released
        return released

    def set_quantity(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")
        if quantity < self.reserved_quantity:
            raise ValidationError(
                f"Cannot set stock of {self.product_id} at {self.warehouse_id} to "
                f"{quantity}: {self.reserved_quantity} units are reserved"
            )
        self.quantity = quantity
