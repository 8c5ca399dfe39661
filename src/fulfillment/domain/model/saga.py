"""SagaRun — the persisted progress record of one checkout.

A checkout touches four independently owned resources (inventory, payment
gateway, order store, cart).  The run records the last step that committed,
the inventory rows it holds and the order snapshot it will commit, so a
later call (payment capture, cancellation) can pick up where the previous
one stopped.

State machine::

    INITIATED -> STOCK_RESERVED -> PAYMENT_PENDING -> CAPTURING
              -> PAYMENT_CAPTURED -> ORDER_PERSISTED -> CART_CLEARED -> COMPLETED

    any non-terminal state -> COMPENSATED   (a step failed, undo ran)
    PAYMENT_PENDING -> CANCELLED            (customer cancelled or checkout expired)

CAPTURING marks a capture in flight.  Moving into it, and into CANCELLED,
is claimed with a conditional write on the stored state so only one of two
racing calls goes on to touch the gateway or the stock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from fulfillment.domain.exceptions import InvalidStateTransitionError
from fulfillment.domain.model.order import Order
from fulfillment.domain.model.value_objects import PaymentMethod


class SagaState(Enum):
    INITIATED = "initiated"
    STOCK_RESERVED = "stock_reserved"
    PAYMENT_PENDING = "payment_pending"
    CAPTURING = "capturing"
    PAYMENT_CAPTURED = "payment_captured"
    ORDER_PERSISTED = "order_persisted"
    CART_CLEARED = "cart_cleared"
    COMPLETED = "completed"
    COMPENSATED = "compensated"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SagaState.COMPLETED, SagaState.COMPENSATED, SagaState.CANCELLED)


_FORWARD: dict[SagaState, frozenset[SagaState]] = {
    SagaState.INITIATED: frozenset({SagaState.STOCK_RESERVED}),
    SagaState.STOCK_RESERVED: frozenset(
        {SagaState.PAYMENT_PENDING, SagaState.ORDER_PERSISTED}  # COD skips payment
    ),
    SagaState.PAYMENT_PENDING: frozenset({SagaState.CAPTURING}),
    SagaState.CAPTURING: frozenset({SagaState.PAYMENT_CAPTURED}),
    SagaState.PAYMENT_CAPTURED: frozenset({SagaState.ORDER_PERSISTED}),
    SagaState.ORDER_PERSISTED: frozenset({SagaState.CART_CLEARED, SagaState.COMPLETED}),
    SagaState.CART_CLEARED: frozenset({SagaState.COMPLETED}),
}


@dataclass(frozen=True)
class Reservation:
    """Stock held at one warehouse for one line item."""

    product_id: str
    warehouse_id: str
    quantity: int


@dataclass
class SagaRun:
    saga_id: str  # same value as the order id it produces
    user_id: str
    payment_method: PaymentMethod
    state: SagaState = SagaState.INITIATED
    reservations: list[Reservation] = field(default_factory=list)
    draft_order: Order | None = None
    payment_id: str | None = None
    gateway_order_id: str | None = None  # encrypted, same ciphertext as Payment
    idempotency_key: str | None = None
    failure_reason: str | None = None
    expires_at: datetime | None = None  # set once payment is pending
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def advance(self, state: SagaState) -> None:
        if state not in _FORWARD.get(self.state, frozenset()):
            raise InvalidStateTransitionError(
                f"Saga {self.saga_id} cannot move from {self.state.value} to {state.value}"
            )
        self._move_to(state)

    def compensated(self, reason: str) -> None:
        if self.state.is_terminal:
            raise InvalidStateTransitionError(
                f"Saga {self.saga_id} already finished as {self.state.value}"
            )
        self.failure_reason = reason
        self._move_to(SagaState.COMPENSATED)

    def cancel(self) -> None:
        if not self.awaiting_payment:
            raise InvalidStateTransitionError(
                f"Cannot cancel checkout {self.saga_id} in {self.state.value} state"
            )
        self._move_to(SagaState.CANCELLED)

    def hold_for(self, ttl: timedelta) -> None:
        self.expires_at = datetime.now(timezone.utc) + ttl

    def is_expired(self, now: datetime | None = None) -> bool:
        """True when the checkout is still awaiting payment past its deadline."""
        if not self.awaiting_payment or self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(timezone.utc))

    @property
    def awaiting_payment(self) -> bool:
        return self.state is SagaState.PAYMENT_PENDING

    @property
    def payment_in_flight(self) -> bool:
        return self.state in (SagaState.PAYMENT_PENDING, SagaState.CAPTURING)

    def _move_to(self, state: SagaState) -> None:
        self.state = state
        self.updated_at = datetime.now(timezone.utc)
