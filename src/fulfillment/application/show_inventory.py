"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from fulfillment.domain.repository.inventory_repository import InventoryRepository


@dataclass(frozen=True)
class InventoryLineDTO:
    product_id: str
    warehouse_id: str
    total: int
    reserved: int
    available: int


class ShowInventoryHandler:

    def __init__(self, inventory_repo: InventoryRepository) -> None:
        self._inventory_repo = inventory_repo

    def handle(self, product_id: str | None = None) -> list[InventoryLineDTO]:
        if product_id:
            records = self._inventory_repo.list_for_product(product_id)
        else:
            records = self._inventory_repo.list_all()
        return [
            InventoryLineDTO(
                product_id=record.product_id,
                warehouse_id=record.warehouse_id,
                total=record.quantity,
                reserved=record.reserved_quantity,
                available=record.available_quantity,
            )
            for record in records
        ]
