"""Abstract repository for the (read-only) warehouse directory."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.warehouse import ShippingRule, Warehouse


class WarehouseRepository(ABC):

    @abstractmethod
    def get(self, warehouse_id: str) -> Warehouse | None:
        """Return a warehouse by id, or None."""

    @abstractmethod
    def list_active(self) -> list[Warehouse]:
        """Return every active warehouse, ordered by id."""

    @abstractmethod
    def get_shipping_rule(self, warehouse_id: str, category: str | None) -> ShippingRule | None:
        """Return the rule for (warehouse, category), or None if unset."""
