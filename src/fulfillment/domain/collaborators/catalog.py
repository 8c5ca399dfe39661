"""Catalog service contract (product facts only, never stock or price)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ProductInfo:
    product_id: str
    name: str
    category: str | None = None
    weight_kg: Decimal | None = None  # per unit; None means "use the default"


class CatalogService(ABC):

    @abstractmethod
    def get_product(self, product_id: str) -> ProductInfo:
        """Return product facts.  Raises EntityNotFoundError if unknown."""
