"""Application service: Complete Order use case.

Fired when fulfilment reports the shipment delivered.  Only PROCESSING
orders can complete; reserved stock stays reserved, since decrementing
physical stock belongs to the warehouse system.  The status is written
conditionally so a concurrent cancel cannot be overwritten.
"""

from __future__ import annotations

import structlog

from fulfillment.domain.exceptions import EntityNotFoundError
from fulfillment.domain.model.order import OrderStatus
from fulfillment.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


class CompleteOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: str) -> str:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundError(f"Order {order_id} not found")
        order.complete()
        if not self._order_repo.save_if_status(order, OrderStatus.PROCESSING):
            return self.handle(order_id)
        logger.info("Order completed", order_id=order_id)
        return order.status.value
