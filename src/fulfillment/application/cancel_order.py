"""Application service: Cancel Order use case.

PENDING and PROCESSING orders move to CANCELLED, then the stock held at
each line item's recorded warehouse is released.  The status change is a
conditional write on the status the order was read in; of two racing
cancels only the winner releases stock, the other reports ``cancelled``.
Gateway orders with a completed payment are refunded afterwards; a refund
failure is reported in the result but never blocks the release or the
status change.

A checkout still waiting for payment approval has no order row yet.  It
is cancelled through its saga run: stock released, pending payment
failed, run closed.

Cancelling twice is a no-op that reports ``cancelled`` again.
"""

from __future__ import annotations

import structlog

from fulfillment.application.dto import CancelResultDTO
from fulfillment.application.order_saga import OrderSaga
from fulfillment.domain.exceptions import EntityNotFoundError, InvalidStateTransitionError
from fulfillment.domain.model.order import Order, OrderStatus
from fulfillment.domain.model.payment import PaymentStatus
from fulfillment.domain.model.saga import Reservation, SagaRun, SagaState
from fulfillment.domain.repository.order_repository import OrderRepository
from fulfillment.domain.repository.payment_repository import PaymentRepository
from fulfillment.domain.repository.saga_repository import SagaRepository
from fulfillment.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = structlog.get_logger(__name__)


class CancelOrderHandler:

    def __init__(
        self,
        saga: OrderSaga,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        saga_repo: SagaRepository,
        reservation_service: InventoryReservationService,
    ) -> None:
        self._saga = saga
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._saga_repo = saga_repo
        self._reservation_service = reservation_service

    def handle(self, order_id: str) -> CancelResultDTO:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            run = self._saga_repo.get(order_id)
            if run is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            return self._cancel_checkout(run)

        if order.status is OrderStatus.CANCELLED:
            return CancelResultDTO(order_id=order_id, status=order.status.value)
        if not order.can_cancel:
            raise InvalidStateTransitionError(
                f"Cannot cancel order {order_id} in {order.status.value} status"
            )

        read_as = order.status
        order.cancel()
        if not self._order_repo.save_if_status(order, read_as):
            # Status moved under us; decide again from what is stored now.
            logger.info("Order changed while cancelling", order_id=order_id)
            return self.handle(order_id)

        self._reservation_service.release_all(self._reservations(order))
        logger.info("Order cancelled", order_id=order_id)

        return CancelResultDTO(
            order_id=order_id,
            status=order.status.value,
            refund_error=self._refund(order),
        )

    # --- Internal helpers -----------------------------------------------------

    def _cancel_checkout(self, run: SagaRun) -> CancelResultDTO:
        if run.state is SagaState.CANCELLED:
            return CancelResultDTO(order_id=run.saga_id, status="cancelled")
        if not run.awaiting_payment:
            raise InvalidStateTransitionError(
                f"Cannot cancel checkout {run.saga_id} in {run.state.value} state"
            )
        if not self._saga.cancel_checkout(run, "cancelled by customer"):
            return self.handle(run.saga_id)
        return CancelResultDTO(order_id=run.saga_id, status="cancelled")

    def _refund(self, order: Order) -> str | None:
        if not order.payment_method.uses_gateway:
            return None
        payment = self._payment_repo.get_by_order_id(order.id)
        if payment is None or payment.status is not PaymentStatus.COMPLETED:
            return None
        try:
            self._saga.refund(payment)
        except Exception as exc:
            logger.error("Refund failed", order_id=order.id, payment_id=payment.id, error=str(exc))
            return str(exc)
        return None

    @staticmethod
    def _reservations(order: Order) -> list[Reservation]:
        return [
            Reservation(item.product_id, item.warehouse_id, item.quantity.value)
            for item in order.items
        ]
