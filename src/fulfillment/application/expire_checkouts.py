"""Application service: Expire Checkouts use case.

A gateway checkout holds its stock while the customer approves the
payment.  Abandoned checkouts must hand that stock back: every run still
awaiting payment past its deadline is cancelled exactly as a customer
cancel would do it.  A run that a capture claims in the meantime is left
alone.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from fulfillment.application.order_saga import OrderSaga
from fulfillment.domain.repository.saga_repository import SagaRepository

logger = structlog.get_logger(__name__)

EXPIRY_REASON = "checkout expired"


class ExpireCheckoutsHandler:

    def __init__(self, saga: OrderSaga, saga_repo: SagaRepository) -> None:
        self._saga = saga
        self._saga_repo = saga_repo

    def handle(self, now: datetime | None = None) -> list[str]:
        """Cancel expired checkouts and return their order ids."""
        now = now or datetime.now(timezone.utc)
        expired: list[str] = []
        for run in self._saga_repo.list_expired(now):
            if self._saga.cancel_checkout(run, EXPIRY_REASON):
                expired.append(run.saga_id)
        logger.info("Expired checkouts swept", released=len(expired))
        return expired
