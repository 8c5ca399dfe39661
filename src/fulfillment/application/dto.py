"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class QuoteItemSpec:
    """Input: one product to quote shipping for."""

    product_id: str
    quantity: int = 1
    category: str | None = None  # looked up in the catalog when omitted


@dataclass(frozen=True)
class ModeQuoteDTO:
    available: bool
    cost: str | None = None  # formatted, e.g. "INR 50.00"
    estimated_days: int | None = None
    reason: str | None = None


@dataclass(frozen=True)
class ShippingOptionsDTO:
    """Output: both shipping modes for one product, or the error that stopped it."""

    product_id: str
    quantity: int
    warehouse_id: str | None = None
    zone: int | None = None
    options: dict[str, ModeQuoteDTO] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CheckoutResultDTO:
    """Output of a checkout: COD orders are placed, gateway orders await approval."""

    order_id: str
    status: str
    payment_approval_link: str | None = None


@dataclass(frozen=True)
class CaptureResultDTO:
    order_id: str
    status: str


@dataclass(frozen=True)
class CancelResultDTO:
    order_id: str
    status: str
    refund_error: str | None = None


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_id: str
    product_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "INR 15.00"
    line_total: str
    warehouse_id: str
    shipping_mode: str
    shipping_cost: str
    estimated_days: int


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: str
    user_id: str
    status: str
    payment_method: str
    items: list[OrderLineItemDTO]
    subtotal: str
    shipping_total: str
    total: str
    shipping_address: dict
    created_at: str
