"""Application service: Capture Payment use case.

Second half of a gateway checkout.  The customer has approved the payment
intent created at checkout; capture it, then commit the order exactly as
a COD checkout would.

Before the gateway is called the run is claimed (PAYMENT_PENDING ->
CAPTURING) with a conditional write, so a repeated or concurrent capture
and a concurrent cancel cannot both act on the same checkout.  The loser
reports the checkout's current status and compensates nothing.

Capture is attempted once.  A declined capture, a gateway error and a
timeout are all treated alike: the reservations are released, the payment
is marked failed, no order row is written and PaymentFailedError is raised.
A checkout past its deadline is cancelled instead of captured.
"""

from __future__ import annotations

import structlog

from fulfillment.application.compensation import CompensationStack
from fulfillment.application.dto import CaptureResultDTO
from fulfillment.application.expire_checkouts import EXPIRY_REASON
from fulfillment.application.order_saga import OrderSaga
from fulfillment.domain.collaborators.payment_gateway import PaymentGateway
from fulfillment.domain.exceptions import (
    CollaboratorError,
    EntityNotFoundError,
    InvalidStateTransitionError,
    PaymentFailedError,
    ValidationError,
)
from fulfillment.domain.model.saga import SagaState
from fulfillment.domain.repository.order_repository import OrderRepository
from fulfillment.domain.repository.payment_repository import PaymentRepository
from fulfillment.domain.repository.saga_repository import SagaRepository

logger = structlog.get_logger(__name__)

_COMMITTED = (SagaState.ORDER_PERSISTED, SagaState.CART_CLEARED, SagaState.COMPLETED)
_CLAIMED = (SagaState.CAPTURING, SagaState.PAYMENT_CAPTURED) + _COMMITTED

# Customer-visible status of a checkout that has no order row.
_CHECKOUT_STATUS = {
    SagaState.PAYMENT_PENDING: "pending",
    SagaState.CAPTURING: "pending",
    SagaState.PAYMENT_CAPTURED: "pending",
    SagaState.CANCELLED: "cancelled",
    SagaState.COMPENSATED: "failed",
}


class CapturePaymentHandler:

    def __init__(
        self,
        saga: OrderSaga,
        saga_repo: SagaRepository,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        gateway: PaymentGateway,
    ) -> None:
        self._saga = saga
        self._saga_repo = saga_repo
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._gateway = gateway

    def handle(self, order_id: str, gateway_order_id: str) -> CaptureResultDTO:
        run = self._saga_repo.get(order_id)
        if run is None:
            raise EntityNotFoundError(f"Order {order_id} not found")

        if run.state in _CLAIMED:
            return self._current_status(order_id)
        if not run.awaiting_payment:
            raise InvalidStateTransitionError(
                f"Order {order_id} is not awaiting payment ({run.state.value})"
            )

        payment = self._payment_repo.get_by_id(run.payment_id) if run.payment_id else None
        if payment is None:
            raise EntityNotFoundError(f"No payment recorded for order {order_id}")
        if self._saga.gateway_order_id(payment) != gateway_order_id:
            raise ValidationError(f"Gateway order id does not match order {order_id}")

        log = logger.bind(saga_id=order_id, payment_id=payment.id)
        if run.is_expired():
            if self._saga.cancel_checkout(run, EXPIRY_REASON):
                log.info("Capture refused, checkout expired")
                raise InvalidStateTransitionError(
                    f"Checkout {order_id} expired before payment was captured"
                )
            return self._current_status(order_id)
        if not self._saga.claim(run, SagaState.CAPTURING):
            return self._current_status(order_id)

        compensations = CompensationStack(order_id)
        compensations.push("release_stock", lambda: self._saga.release_stock(run))

        # --- Capture (never retried) ----------------------------------------
        capture = None
        try:
            capture = self._gateway.capture_order(gateway_order_id, payment.idempotency_key)
            if not capture.succeeded:
                raise PaymentFailedError(
                    f"Payment for order {order_id} was not completed "
                    f"(gateway status {capture.status})"
                )
        except (CollaboratorError, PaymentFailedError) as exc:
            raw = capture.raw if capture is not None else {"error": str(exc)}
            compensations.push("fail_payment", lambda: self._saga.fail_payment(payment, raw))
            self._saga.abort(run, compensations, exc)
            log.warning("Payment capture failed", error=str(exc))
            if isinstance(exc, PaymentFailedError):
                raise
            raise PaymentFailedError(f"Payment for order {order_id} failed: {exc}") from exc

        # --- Commit ---------------------------------------------------------
        try:
            payment.complete(capture.capture_id, capture.raw)
            self._payment_repo.save(payment)
            compensations.push("refund_payment", lambda: self._saga.refund(payment))
            run.advance(SagaState.PAYMENT_CAPTURED)
            self._saga_repo.save(run)
            log.info("Payment captured", capture_id=capture.capture_id)

            order = self._saga.commit(run, compensations)
        except Exception as exc:
            self._saga.abort(run, compensations, exc)
            raise

        return CaptureResultDTO(order_id=order.id, status=order.status.value)

    # --- Internal helpers -----------------------------------------------------

    def _current_status(self, order_id: str) -> CaptureResultDTO:
        """Report where the checkout stands without touching it."""
        run = self._saga_repo.get(order_id)
        if run is None:
            raise EntityNotFoundError(f"Order {order_id} not found")
        if run.state in _COMMITTED:
            order = self._order_repo.get_by_id(order_id)
            if order is None:
                raise EntityNotFoundError(f"Order {order_id} not found")
            return CaptureResultDTO(order_id=order_id, status=order.status.value)
        status = _CHECKOUT_STATUS.get(run.state, "pending")
        return CaptureResultDTO(order_id=order_id, status=status)
