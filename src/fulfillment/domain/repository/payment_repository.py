"""Abstract repository for Payment records."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.payment import Payment


class PaymentRepository(ABC):

    @abstractmethod
    def get_by_id(self, payment_id: str) -> Payment | None:
        """Return a payment by id, or None."""

    @abstractmethod
    def get_by_order_id(self, order_id: str) -> Payment | None:
        """Return the payment for an order, or None (COD orders have none)."""

    @abstractmethod
    def save(self, payment: Payment) -> None:
        """Persist a new or updated payment."""
