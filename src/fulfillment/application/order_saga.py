"""Saga steps shared by the checkout, capture and cancel use cases.

The order saga spans two client calls for gateway payments (checkout, then
capture once the customer has approved), so its steps live here rather
than inside one handler.  ``SagaRun`` is saved after every committed step;
an abort unwinds the compensation stack and records why.  Capture and
cancellation of a pending checkout can race, so each first claims the run
with a conditional state write and only the winner goes on.

Step order::

    reserve stock -> [create payment intent -> capture] -> persist order
                  -> clear cart (best effort) -> done
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

import structlog

from fulfillment.application.compensation import CompensationStack
from fulfillment.domain.collaborators.cart import CartService
from fulfillment.domain.collaborators.cipher import Cipher
from fulfillment.domain.collaborators.payment_gateway import PaymentGateway
from fulfillment.domain.exceptions import (
    CollaboratorError,
    DomainException,
    OrderAlreadyExistsError,
    PaymentFailedError,
)
from fulfillment.domain.model.order import Order
from fulfillment.domain.model.payment import Payment, PaymentStatus
from fulfillment.domain.model.saga import SagaRun, SagaState
from fulfillment.domain.repository.order_repository import OrderRepository
from fulfillment.domain.repository.payment_repository import PaymentRepository
from fulfillment.domain.repository.saga_repository import SagaRepository
from fulfillment.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = structlog.get_logger(__name__)

# How long a gateway checkout may hold stock while waiting for approval.
DEFAULT_CHECKOUT_TTL = timedelta(minutes=15)


class OrderSaga:

    def __init__(
        self,
        saga_repo: SagaRepository,
        order_repo: OrderRepository,
        payment_repo: PaymentRepository,
        reservation_service: InventoryReservationService,
        cart: CartService,
        gateway: PaymentGateway,
        cipher: Cipher,
        gateway_currency: str = "INR",
        conversion_rate: Decimal = Decimal("1"),
        checkout_ttl: timedelta = DEFAULT_CHECKOUT_TTL,
    ) -> None:
        self._saga_repo = saga_repo
        self._order_repo = order_repo
        self._payment_repo = payment_repo
        self._reservation_service = reservation_service
        self._cart = cart
        self._gateway = gateway
        self._cipher = cipher
        self._gateway_currency = gateway_currency
        self._conversion_rate = conversion_rate
        self._checkout_ttl = checkout_ttl

    # --- Payment --------------------------------------------------------------

    def start_payment(self, run: SagaRun, compensations: CompensationStack) -> str | None:
        """Create the gateway intent and a pending Payment.

        Returns the approval link the customer must visit.
        """
        order = run.draft_order
        amount = order.total
        if amount.currency != self._gateway_currency:
            amount = amount.convert(self._gateway_currency, self._conversion_rate)

        idempotency_key = str(uuid.uuid4())
        try:
            intent = self._gateway.create_order(amount, idempotency_key)
        except CollaboratorError as exc:
            raise PaymentFailedError(f"Could not start payment: {exc}") from exc

        payment = Payment(
            id=str(uuid.uuid4()),
            order_id=order.id,
            encrypted_gateway_order_id=self._cipher.encrypt(intent.gateway_order_id),
            amount=amount,
            idempotency_key=idempotency_key,
            raw_gateway_payload=intent.raw,
        )
        self._payment_repo.save(payment)
        compensations.push("fail_payment", lambda: self.fail_payment(payment))

        run.payment_id = payment.id
        run.gateway_order_id = payment.encrypted_gateway_order_id
        run.idempotency_key = idempotency_key
        run.advance(SagaState.PAYMENT_PENDING)
        run.hold_for(self._checkout_ttl)
        self._saga_repo.save(run)
        logger.info(
            "Payment pending",
            saga_id=run.saga_id,
            payment_id=payment.id,
            amount=str(amount),
            expires_at=run.expires_at.isoformat(),
        )
        return intent.approval_link

    def fail_payment(self, payment: Payment, payload: dict | None = None) -> None:
        payment.fail(payload)
        self._payment_repo.save(payment)

    def refund(self, payment: Payment) -> None:
        if payment.capture_id is None:
            raise PaymentFailedError(f"Payment {payment.id} has no capture to refund")
        self._gateway.refund_capture(payment.capture_id, f"refund-{payment.idempotency_key}")
        logger.info("Payment refunded", payment_id=payment.id, order_id=payment.order_id)

    def gateway_order_id(self, payment: Payment) -> str:
        return self._cipher.decrypt(payment.encrypted_gateway_order_id)

    # --- Stock ----------------------------------------------------------------

    def release_stock(self, run: SagaRun) -> None:
        self._reservation_service.release_all(reversed(run.reservations))

    # --- Claims ---------------------------------------------------------------

    def claim(self, run: SagaRun, state: SagaState) -> bool:
        """Move *run* to *state* unless another call moved it first.

        The store is updated with a conditional write on the state this
        copy of the run was loaded in.  On False the caller must leave the
        run, its stock and its payment alone.
        """
        expected = run.state
        if state is SagaState.CANCELLED:
            run.cancel()
        else:
            run.advance(state)
        if self._saga_repo.transition(run.saga_id, expected, state):
            return True
        logger.info(
            "Saga step already claimed",
            saga_id=run.saga_id,
            expected=expected.value,
            wanted=state.value,
        )
        return False

    def cancel_checkout(self, run: SagaRun, reason: str) -> bool:
        """Cancel a checkout still awaiting payment approval.

        Releases its stock and fails its pending payment.  Returns False,
        touching nothing, when a capture or another cancel got there first.
        """
        if not self.claim(run, SagaState.CANCELLED):
            return False
        self.release_stock(run)
        if run.payment_id:
            payment = self._payment_repo.get_by_id(run.payment_id)
            if payment is not None and payment.status is PaymentStatus.PENDING:
                self.fail_payment(payment, {"reason": reason})
        run.failure_reason = reason
        self._saga_repo.save(run)
        logger.info("Checkout cancelled before payment", saga_id=run.saga_id, reason=reason)
        return True

    # --- Commit ---------------------------------------------------------------

    def commit(self, run: SagaRun, compensations: CompensationStack) -> Order:
        """Persist the order, clear the cart and close the run.

        Once the order row exists it is never deleted: a later failure
        marks it failed through the compensation stack instead.
        """
        order = run.draft_order
        try:
            self._order_repo.add(order)
        except OrderAlreadyExistsError:
            # Someone else committed this checkout; its stock and payment are theirs.
            compensations.discard()
            logger.warning("Order already persisted", saga_id=run.saga_id)
            return self._order_repo.get_by_id(order.id)
        compensations.push("mark_order_failed", lambda: self._mark_failed(order))
        run.advance(SagaState.ORDER_PERSISTED)
        self._saga_repo.save(run)
        logger.info("Order persisted", saga_id=run.saga_id, status=order.status.value)

        self._clear_cart(run)

        run.advance(SagaState.COMPLETED)
        self._saga_repo.save(run)
        compensations.discard()
        logger.info("Checkout completed", saga_id=run.saga_id)
        return order

    def abort(self, run: SagaRun, compensations: CompensationStack, error: Exception) -> None:
        """Unwind everything committed so far and close the run."""
        logger.warning(
            "Checkout failed, compensating",
            saga_id=run.saga_id,
            state=run.state.value,
            pending_compensations=len(compensations),
            error=str(error),
        )
        compensations.unwind()
        if run.state.is_terminal:
            return
        run.compensated(str(error) or type(error).__name__)
        try:
            self._saga_repo.save(run)
        except Exception as exc:
            logger.error("Could not record compensated saga", saga_id=run.saga_id, error=str(exc))

    # --- Internal helpers -----------------------------------------------------

    def _clear_cart(self, run: SagaRun) -> None:
        try:
            self._cart.clear_cart(run.user_id)
        except DomainException as exc:
            logger.warning(
                "Cart clearing failed, order stands",
                saga_id=run.saga_id,
                user_id=run.user_id,
                error=str(exc),
            )
            return
        run.advance(SagaState.CART_CLEARED)
        self._saga_repo.save(run)

    def _mark_failed(self, order: Order) -> None:
        order.fail()
        self._order_repo.save(order)
        logger.error("Order marked failed", order_id=order.id)
