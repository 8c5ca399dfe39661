"""Order aggregate — the saga's commit record.

The Order is an aggregate root that owns its line items. Every line item
carries the allocation decision taken at checkout (warehouse and shipping
choice) so later cancellation can release the exact inventory rows without
running allocation again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from fulfillment.domain.exceptions import InvalidStateTransitionError, ValidationError
from fulfillment.domain.model.value_objects import (
    Address,
    Money,
    PaymentMethod,
    Quantity,
    ShippingMode,
)

ORDER_SCHEMA_VERSION = 1


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.FAILED}
    ),
    OrderStatus.PROCESSING: frozenset(
        {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.FAILED}
    ),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class UserSnapshot:
    """Who placed the order, as known at checkout time."""

    user_id: str
    name: str | None = None
    email: str | None = None

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "name": self.name, "email": self.email}

    @staticmethod
    def from_dict(raw: dict) -> UserSnapshot:
        return UserSnapshot(
            user_id=str(raw["user_id"]),
            name=raw.get("name"),
            email=raw.get("email"),
        )


@dataclass(frozen=True)
class OrderLineItem:
    """One product line with its frozen price and allocation decision."""

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # locked at checkout
    warehouse_id: str
    shipping_mode: ShippingMode
    shipping_cost: Money
    estimated_days: int

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass(frozen=True)
class ShippingSnapshot:
    mode: str  # "standard", "express" or "mixed"
    total_cost: Money
    estimated_days: int

    @staticmethod
    def summarise(items: list[OrderLineItem], currency: str) -> ShippingSnapshot:
        modes = {item.shipping_mode.value for item in items}
        total = Money.zero(currency)
        for item in items:
            total = total + item.shipping_cost
        return ShippingSnapshot(
            mode=modes.pop() if len(modes) == 1 else "mixed",
            total_cost=total,
            estimated_days=max((item.estimated_days for item in items), default=0),
        )


# ---------------------------------------------------------------------------
# Constants for business rules
# ---------------------------------------------------------------------------
MAX_LINE_ITEMS = 50


@dataclass
class Order:
    """Aggregate root for placed orders.

    Use the ``Order.create()`` factory for new orders — it enforces all
    business rules.  The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted orders without re-validating.
    """

    id: str
    user: UserSnapshot
    address: Address
    items: list[OrderLineItem]
    shipping: ShippingSnapshot
    payment_method: PaymentMethod
    status: OrderStatus = OrderStatus.PROCESSING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    schema_version: int = ORDER_SCHEMA_VERSION

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        order_id: str,
        user: UserSnapshot,
        address: Address,
        items: list[OrderLineItem],
        payment_method: PaymentMethod,
        status: OrderStatus = OrderStatus.PROCESSING,
    ) -> Order:
        """Create a new order, enforcing all invariants."""
        if not order_id:
            raise ValidationError("Order id is required")
        if not user.user_id or not user.user_id.strip():
            raise ValidationError("User id is required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        currencies = {item.unit_price.currency for item in items}
        currencies |= {item.shipping_cost.currency for item in items}
        if len(currencies) != 1:
            raise ValidationError(
                f"Order mixes currencies: {', '.join(sorted(currencies))}"
            )

        product_ids = [item.product_id for item in items]
        if len(set(product_ids)) != len(product_ids):
            raise ValidationError("Each product may appear only once per order")

        return Order(
            id=order_id,
            user=user,
            address=address,
            items=list(items),
            shipping=ShippingSnapshot.summarise(items, currencies.pop()),
            payment_method=payment_method,
            status=status,
        )

    # --- State transitions ----------------------------------------------------

    def complete(self) -> None:
        """Transition PROCESSING -> COMPLETED (fulfilment finished)."""
        if self.status is not OrderStatus.PROCESSING:
            raise InvalidStateTransitionError(
                f"Cannot complete order {self.id} in {self.status.value} status"
            )
        self._move_to(OrderStatus.COMPLETED)

    def cancel(self) -> None:
        """Transition PENDING|PROCESSING -> CANCELLED.

        The cancellation handler stores this change conditionally and only
        the call that wins releases the order's inventory.
        """
        if self.status is OrderStatus.CANCELLED:
            raise InvalidStateTransitionError(f"Order {self.id} is already cancelled")
        if not self.can_cancel:
            raise InvalidStateTransitionError(
                f"Cannot cancel order {self.id} in {self.status.value} status"
            )
        self._move_to(OrderStatus.CANCELLED)

    def fail(self) -> None:
        """Mark a persisted order failed; it is kept for audit, never deleted."""
        if OrderStatus.FAILED not in _TRANSITIONS[self.status]:
            raise InvalidStateTransitionError(
                f"Cannot fail order {self.id} in {self.status.value} status"
            )
        self._move_to(OrderStatus.FAILED)

    # --- Computed properties --------------------------------------------------

    @property
    def can_cancel(self) -> bool:
        return OrderStatus.CANCELLED in _TRANSITIONS[self.status]

    @property
    def subtotal(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def total(self) -> Money:
        return self.subtotal + self.shipping.total_cost

    @property
    def currency(self) -> str:
        return self.items[0].unit_price.currency

    # --- Internal helpers -----------------------------------------------------

    def _move_to(self, status: OrderStatus) -> None:
        self.status = status
        self.updated_at = datetime.now(timezone.utc)
