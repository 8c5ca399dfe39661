"""Payment gateway contract.

Two-step flow: ``create_order`` registers an intent and hands back a link
the customer approves in their browser; ``capture_order`` takes the money
once they are back.  Capture must be idempotent on the gateway's side for
a given key, which is why the key is part of the contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from fulfillment.domain.model.value_objects import Money


@dataclass(frozen=True)
class GatewayOrder:
    gateway_order_id: str
    approval_link: str | None
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayCapture:
    status: str
    capture_id: str | None
    raw: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status.upper() == "COMPLETED"


class PaymentGateway(ABC):

    @abstractmethod
    def create_order(self, amount: Money, idempotency_key: str) -> GatewayOrder:
        """Create a payment intent for *amount*."""

    @abstractmethod
    def capture_order(self, gateway_order_id: str, idempotency_key: str) -> GatewayCapture:
        """Capture an approved intent.  A timeout is reported as CollaboratorError."""

    @abstractmethod
    def refund_capture(self, capture_id: str, idempotency_key: str) -> None:
        """Refund a completed capture in full."""
