"""Payment record owned by the saga's payment step."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from fulfillment.domain.exceptions import InvalidStateTransitionError
from fulfillment.domain.model.value_objects import Money


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Payment:
    """A gateway payment for one order.

    ``encrypted_gateway_order_id`` is never stored in clear text; the
    cipher lives in infrastructure and is injected where needed.
    """

    id: str
    order_id: str
    encrypted_gateway_order_id: str
    amount: Money
    idempotency_key: str
    status: PaymentStatus = PaymentStatus.PENDING
    capture_id: str | None = None
    raw_gateway_payload: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def complete(self, capture_id: str, payload: dict) -> None:
        if self.status is not PaymentStatus.PENDING:
            raise InvalidStateTransitionError(
                f"Cannot complete payment {self.id} in {self.status.value} status"
            )
        self.status = PaymentStatus.COMPLETED
        self.capture_id = capture_id
        self._record(payload)

    def fail(self, payload: dict | None = None) -> None:
        if self.status is PaymentStatus.FAILED:
            return
        if self.status is not PaymentStatus.PENDING:
            raise InvalidStateTransitionError(
                f"Cannot fail payment {self.id} in {self.status.value} status"
            )
        self.status = PaymentStatus.FAILED
        self._record(payload or {})

    def _record(self, payload: dict) -> None:
        if payload:
            self.raw_gateway_payload = payload
        self.updated_at = datetime.now(timezone.utc)
