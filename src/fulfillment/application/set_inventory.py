"""Application service: Set Inventory use case."""

from __future__ import annotations

from fulfillment.domain.exceptions import EntityNotFoundError
from fulfillment.domain.model.inventory import InventoryRecord
from fulfillment.domain.repository.inventory_repository import InventoryRepository
from fulfillment.domain.repository.warehouse_repository import WarehouseRepository


class SetInventoryHandler:

    def __init__(
        self,
        inventory_repo: InventoryRepository,
        warehouse_repo: WarehouseRepository,
    ) -> None:
        self._inventory_repo = inventory_repo
        self._warehouse_repo = warehouse_repo

    def handle(self, product_id: str, warehouse_id: str, quantity: int) -> None:
        """Set the physical stock of a product at one warehouse."""
        if self._warehouse_repo.get(warehouse_id) is None:
            raise EntityNotFoundError(f"Warehouse not found: '{warehouse_id}'")

        existing = self._inventory_repo.get(product_id, warehouse_id)
        if existing is not None:
            existing.set_quantity(quantity)
            self._inventory_repo.save(existing)
        else:
            record = InventoryRecord(product_id=product_id, warehouse_id=warehouse_id, quantity=0)
            record.set_quantity(quantity)
            self._inventory_repo.save(record)
