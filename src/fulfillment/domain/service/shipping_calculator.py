"""Domain service: Shipping Cost Calculator.

    cost           = base_cost + per_kg_cost * weight(quantity)
    estimated_days = ceil(rule_days * ZONE_DAY_FACTORS[zone])

Rules are looked up per (warehouse, category) and fall back to
``DEFAULT_SHIPPING_RULE`` when the directory has none.  Costs are always
quoted in INR and rounded to paise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal

from fulfillment.domain.exceptions import ValidationError
from fulfillment.domain.model.value_objects import Money, ShippingMode
from fulfillment.domain.model.warehouse import DEFAULT_SHIPPING_RULE, ShippingRate, Warehouse
from fulfillment.domain.repository.warehouse_repository import WarehouseRepository
from fulfillment.domain.service.zone import Zone

# ---------------------------------------------------------------------------
# Tunables.  The zone factors stretch the rule's delivery estimate with
# distance; they are a product decision, not derived from carrier data.
# ---------------------------------------------------------------------------
ZONE_DAY_FACTORS: dict[Zone, Decimal] = {
    Zone.LOCAL: Decimal("1.0"),
    Zone.REGIONAL: Decimal("1.4"),
    Zone.NATIONAL: Decimal("2.0"),
}

DEFAULT_UNIT_WEIGHT_KG = Decimal("0.5")


@dataclass(frozen=True)
class ShippingQuote:
    cost: Money
    estimated_days: int
    zone: Zone | None
    mode: ShippingMode
    warehouse_id: str | None


class ShippingCalculator:

    def __init__(
        self,
        warehouse_repo: WarehouseRepository,
        default_unit_weight_kg: Decimal = DEFAULT_UNIT_WEIGHT_KG,
    ) -> None:
        self._warehouse_repo = warehouse_repo
        self._default_unit_weight_kg = default_unit_weight_kg

    def quote(
        self,
        warehouse: Warehouse,
        category: str | None,
        zone: Zone,
        mode: ShippingMode,
        quantity: int,
        customer_pincode: str | None = None,
        unit_weight_kg: Decimal | None = None,
    ) -> ShippingQuote:
        """Price one line item shipped from *warehouse*.

        Raises ValidationError when the mode is switched off, either by the
        rule itself or by the warehouse's coverage of *customer_pincode*.
        """
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")

        rule = self._warehouse_repo.get_shipping_rule(warehouse.warehouse_id, category)
        rate = (rule or DEFAULT_SHIPPING_RULE).rate_for(mode)

        if not rate.available or not warehouse.offers(customer_pincode, mode):
            raise ValidationError(
                f"{mode.value.capitalize()} shipping is not available for pincode "
                f"{customer_pincode or '(none)'} from warehouse {warehouse.warehouse_id}"
            )

        return ShippingQuote(
            cost=self._cost(rate, quantity, unit_weight_kg),
            estimated_days=math.ceil(rate.estimated_days * ZONE_DAY_FACTORS[zone]),
            zone=zone,
            mode=mode,
            warehouse_id=warehouse.warehouse_id,
        )

    def default_quote(self, mode: ShippingMode, quantity: int = 1) -> ShippingQuote:
        """Quote with no address or warehouse context (e.g. catalog browsing)."""
        rate = DEFAULT_SHIPPING_RULE.rate_for(mode)
        return ShippingQuote(
            cost=self._cost(rate, max(quantity, 1), None),
            estimated_days=rate.estimated_days,
            zone=None,
            mode=mode,
            warehouse_id=None,
        )

    # --- Internal helpers -----------------------------------------------------

    def _cost(self, rate: ShippingRate, quantity: int, unit_weight_kg: Decimal | None) -> Money:
        per_unit = unit_weight_kg if unit_weight_kg is not None else self._default_unit_weight_kg
        weight = per_unit * quantity
        return Money(rate.base_cost + rate.per_kg_cost * weight).rounded()
