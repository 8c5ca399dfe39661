"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fulfillment.domain.model.order import Order, OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def list_by_user(self, user_id: str, status: OrderStatus | None = None) -> list[Order]:
        """Return a user's orders, newest first, optionally filtered by status."""

    @abstractmethod
    def add(self, order: Order) -> None:
        """Insert a new order as one snapshot.

        Raises OrderAlreadyExistsError if the id is taken.
        """

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a status change of an existing order."""

    @abstractmethod
    def save_if_status(self, order: Order, expected: OrderStatus) -> bool:
        """Persist *order* only if its stored status is still *expected*.

        Must be a single atomic write.  Returns False when another call
        changed the status first.
        """
