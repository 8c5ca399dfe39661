"""Pricing service contract."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.value_objects import Money


class PricingService(ABC):

    @abstractmethod
    def get_price(self, product_id: str) -> Money:
        """Return the current selling price.  Raises EntityNotFoundError if unpriced."""
