"""Domain service: Warehouse Allocator.

Picks the single warehouse that should ship one line item.

The search runs in widening passes and stops at the first pass that
contains a warehouse holding *any* available stock of the product:

  a. active warehouses whose pincode coverage includes the customer pincode
  b. active warehouses in the customer's state
  c. every active warehouse, same-state ones first on ties

Within a pass, warehouses that can cover the whole quantity beat those
that can only cover part of it; then nearer zones beat farther ones; then
more stock beats less.  A partial pick is still returned because quoting
only needs the zone; the reservation step treats it as a miss and asks
again with the warehouse excluded.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

import structlog

from fulfillment.domain.exceptions import (
    ConsistencyViolationError,
    InsufficientStockError,
    ValidationError,
)
from fulfillment.domain.model.value_objects import Destination
from fulfillment.domain.model.warehouse import Warehouse
from fulfillment.domain.repository.inventory_repository import InventoryRepository
from fulfillment.domain.repository.warehouse_repository import WarehouseRepository
from fulfillment.domain.service.zone import Zone, classify_zone

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Allocation:
    warehouse: Warehouse
    available: int
    zone: Zone

    @property
    def warehouse_id(self) -> str:
        return self.warehouse.warehouse_id

    def covers(self, quantity: int) -> bool:
        return self.available >= quantity


class WarehouseAllocator:

    def __init__(
        self,
        warehouse_repo: WarehouseRepository,
        inventory_repo: InventoryRepository,
    ) -> None:
        self._warehouse_repo = warehouse_repo
        self._inventory_repo = inventory_repo

    def allocate(
        self,
        product_id: str,
        required_quantity: int,
        destination: Destination,
        exclude: Collection[str] = (),
    ) -> Allocation:
        """Return the best warehouse for the line item.

        Raises ValidationError for a non-positive quantity.  Raises
        InsufficientStockError when the product's total available stock is
        below *required_quantity*, or when every candidate holding stock is
        in *exclude*.

        ConsistencyViolationError is a guard: the total and the candidates
        come from the same read, so a positive total always leaves a
        warehouse to pick.  Reaching it means that invariant broke.
        """
        if required_quantity <= 0:
            raise ValidationError(
                f"Quantity for product {product_id} must be positive, got {required_quantity}"
            )
        warehouses = self._warehouse_repo.list_active()
        stock = self._available_by_warehouse(product_id, warehouses)

        total = sum(stock.values())
        if total < required_quantity:
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id} "
                f"(need {required_quantity}, {total} available)",
                product_id=product_id,
            )

        candidates = [
            w for w in warehouses
            if w.warehouse_id not in exclude and stock.get(w.warehouse_id, 0) > 0
        ]

        passes = (
            (lambda w: w.serves(destination.pincode), False),
            (lambda w: w.in_state(destination.state), False),
            (lambda w: True, True),
        )
        for in_pass, prefer_same_state in passes:
            pool = [w for w in candidates if in_pass(w)]
            if pool:
                return self._pick(pool, stock, required_quantity, destination, prefer_same_state)

        if exclude:
            raise InsufficientStockError(
                f"No remaining warehouse can reserve {required_quantity} of "
                f"product {product_id}",
                product_id=product_id,
            )

        logger.error(
            "Stock consistency violation",
            product_id=product_id,
            required_quantity=required_quantity,
            total_available=total,
            pincode=destination.pincode,
        )
        raise ConsistencyViolationError(
            f"Product {product_id} shows {total} available but no warehouse "
            f"could be selected"
        )

    # --- Internal helpers -----------------------------------------------------

    def _available_by_warehouse(
        self, product_id: str, warehouses: list[Warehouse]
    ) -> dict[str, int]:
        active = {w.warehouse_id for w in warehouses}
        stock: dict[str, int] = {}
        for record in self._inventory_repo.list_for_product(product_id):
            if record.is_deleted or record.warehouse_id not in active:
                continue
            stock[record.warehouse_id] = record.available_quantity
        return stock

    @staticmethod
    def _pick(
        pool: list[Warehouse],
        stock: dict[str, int],
        required_quantity: int,
        destination: Destination,
        prefer_same_state: bool,
    ) -> Allocation:
        options = [
            Allocation(
                warehouse=w,
                available=stock[w.warehouse_id],
                zone=classify_zone(w.pincode, destination.pincode),
            )
            for w in pool
        ]

        def rank(option: Allocation) -> tuple:
            same_state = option.warehouse.in_state(destination.state)
            return (
                not option.covers(required_quantity),
                option.zone,
                not same_state if prefer_same_state else False,
                -option.available,
                option.warehouse_id,
            )

        return min(options, key=rank)
