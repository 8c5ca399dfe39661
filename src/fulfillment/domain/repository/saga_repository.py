"""Abstract repository for SagaRun records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from fulfillment.domain.model.saga import SagaRun, SagaState


class SagaRepository(ABC):

    @abstractmethod
    def get(self, saga_id: str) -> SagaRun | None:
        """Return a run by id (the order id it produces), or None."""

    @abstractmethod
    def save(self, run: SagaRun) -> None:
        """Persist a new or updated run."""

    @abstractmethod
    def transition(self, saga_id: str, expected: SagaState, new: SagaState) -> bool:
        """Move the stored run to *new* only if it is still in *expected*.

        Must be a single atomic write.  Returns False when the run is
        missing or another call already moved it.
        """

    @abstractmethod
    def list_expired(self, now: datetime) -> list[SagaRun]:
        """Return runs awaiting payment whose deadline is at or before *now*."""
