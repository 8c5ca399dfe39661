"""Domain service: Inventory Reservation.

This service coordinates reserving and releasing stock for a whole
checkout.  It lives in the domain layer because "never oversell" and
"all lines or none" are core business rules, not just orchestration.

Each line is reserved with a single conditional write against the store
(``InventoryRepository.try_reserve``), so two checkouts racing for the
last units cannot both win.  The loser gets a miss, asks the allocator for
another warehouse and tries again, up to ``MAX_ATTEMPTS`` misses.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from fulfillment.domain.exceptions import InsufficientStockError
from fulfillment.domain.model.saga import Reservation
from fulfillment.domain.model.value_objects import Destination
from fulfillment.domain.repository.inventory_repository import InventoryRepository
from fulfillment.domain.service.warehouse_allocator import Allocation, WarehouseAllocator

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class ReservedLine:
    allocation: Allocation
    reservation: Reservation


class InventoryReservationService:

    def __init__(
        self,
        inventory_repo: InventoryRepository,
        allocator: WarehouseAllocator,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self._inventory_repo = inventory_repo
        self._allocator = allocator
        self._max_attempts = max_attempts

    def reserve_all(
        self,
        lines: list[tuple[str, int]],
        destination: Destination,
    ) -> list[ReservedLine]:
        """Reserve every (product_id, quantity) line, or none of them.

        If line *n* cannot be reserved, lines ``1..n-1`` are released before
        the error propagates.
        """
        reserved: list[ReservedLine] = []
        try:
            for product_id, quantity in lines:
                reserved.append(self.reserve_line(product_id, quantity, destination))
        except Exception:
            self.release_all(line.reservation for line in reversed(reserved))
            raise
        return reserved

    def reserve_line(
        self,
        product_id: str,
        quantity: int,
        destination: Destination,
    ) -> ReservedLine:
        tried: set[str] = set()
        misses = 0
        while True:
            allocation = self._allocator.allocate(
                product_id, quantity, destination, exclude=tried
            )
            warehouse_id = allocation.warehouse_id
            tried.add(warehouse_id)

            # A partial pick is skipped without a write; only lost races count.
            if not allocation.covers(quantity):
                continue

            if self._inventory_repo.try_reserve(product_id, warehouse_id, quantity):
                logger.debug(
                    "Stock reserved",
                    product_id=product_id,
                    warehouse_id=warehouse_id,
                    quantity=quantity,
                )
                return ReservedLine(
                    allocation=allocation,
                    reservation=Reservation(product_id, warehouse_id, quantity),
                )

            misses += 1
            logger.warning(
                "Reservation lost a race, retrying elsewhere",
                product_id=product_id,
                warehouse_id=warehouse_id,
                attempt=misses,
            )
            if misses >= self._max_attempts:
                raise InsufficientStockError(
                    f"Could not reserve {quantity} of product {product_id} "
                    f"after {misses} attempts",
                    product_id=product_id,
                )

    def release_all(self, reservations: Iterable[Reservation]) -> None:
        """Give back reserved stock, floored at zero per row."""
        for reservation in reservations:
            self._inventory_repo.release(
                reservation.product_id,
                reservation.warehouse_id,
                reservation.quantity,
            )
            logger.debug(
                "Stock released",
                product_id=reservation.product_id,
                warehouse_id=reservation.warehouse_id,
                quantity=reservation.quantity,
            )
