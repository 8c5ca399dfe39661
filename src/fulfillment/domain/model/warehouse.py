"""Warehouse directory records: warehouses, pincode coverage, shipping rules.

All of these are maintained by admin tooling and are read-only to the
fulfillment core.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import ShippingMode


@dataclass(frozen=True)
class PincodeCoverage:
    """Which shipping modes a warehouse offers for one customer pincode."""

    pincode: str
    standard_available: bool = True
    express_available: bool = True

    def offers(self, mode: ShippingMode) -> bool:
        if mode is ShippingMode.EXPRESS:
            return self.express_available
        return self.standard_available


@dataclass(frozen=True)
class Warehouse:
    warehouse_id: str
    name: str
    pincode: str
    city: str
    state: str
    is_active: bool = True
    coverage: dict[str, PincodeCoverage] = field(default_factory=dict, compare=False)

    def serves(self, pincode: str | None) -> bool:
        return bool(pincode) and pincode in self.coverage

    def in_state(self, state: str | None) -> bool:
        return bool(state) and self.state.strip().lower() == state.strip().lower()

    def offers(self, pincode: str | None, mode: ShippingMode) -> bool:
        """True unless a coverage record explicitly disables *mode*.

        Pincodes without a coverage record default to available.
        """
        coverage = self.coverage.get(pincode) if pincode else None
        return coverage is None or coverage.offers(mode)


@dataclass(frozen=True)
class ShippingRate:
    base_cost: Decimal
    per_kg_cost: Decimal
    estimated_days: int
    available: bool = True

    def __post_init__(self) -> None:
        if self.base_cost < 0 or self.per_kg_cost < 0:
            raise ValidationError("Shipping costs cannot be negative")
        if self.estimated_days <= 0:
            raise ValidationError("Estimated delivery days must be positive")


@dataclass(frozen=True)
class ShippingRule:
    """Rates for one (warehouse, category) pair."""

    warehouse_id: str | None
    category: str | None
    standard: ShippingRate
    express: ShippingRate

    def rate_for(self, mode: ShippingMode) -> ShippingRate:
        return self.express if mode is ShippingMode.EXPRESS else self.standard


# ---------------------------------------------------------------------------
# Fallback used when a warehouse has no rule for a category, and when there
# is no address or warehouse context at all.
# ---------------------------------------------------------------------------
DEFAULT_SHIPPING_RULE = ShippingRule(
    warehouse_id=None,
    category=None,
    standard=ShippingRate(base_cost=Decimal("50"), per_kg_cost=Decimal("0"), estimated_days=5),
    express=ShippingRate(base_cost=Decimal("150"), per_kg_cost=Decimal("0"), estimated_days=2),
)
