"""Abstract repository for InventoryRecord rows."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.inventory import InventoryRecord


class InventoryRepository(ABC):

    @abstractmethod
    def get(self, product_id: str, warehouse_id: str) -> InventoryRecord | None:
        """Return the record for one (product, warehouse) pair, or None."""

    @abstractmethod
    def list_for_product(self, product_id: str) -> list[InventoryRecord]:
        """Return every live (not soft-deleted) record of a product."""

    @abstractmethod
    def list_all(self) -> list[InventoryRecord]:
        """Return every live record."""

    @abstractmethod
    def save(self, record: InventoryRecord) -> None:
        """Persist a new or updated record (stock seeding, not reservation)."""

    @abstractmethod
    def try_reserve(self, product_id: str, warehouse_id: str, quantity: int) -> bool:
        """Atomically add *quantity* to ``reserved_quantity``.

        Succeeds only if ``reserved_quantity + quantity <= quantity`` holds at
        the moment of the write.  Returns False when no row was affected.
        """

    @abstractmethod
    def release(self, product_id: str, warehouse_id: str, quantity: int) -> None:
        """Subtract *quantity* from ``reserved_quantity``, floored at zero."""
