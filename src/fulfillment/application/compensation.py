"""Compensation stack for the order saga.

Every step that commits something pushes the action that undoes it.  On
failure the stack is unwound newest first.  An undo action that raises is
logged and skipped so the remaining ones still run; the caller re-raises
the step's original error afterwards.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Compensation:
    name: str
    action: Callable[[], None]


class CompensationStack:

    def __init__(self, saga_id: str) -> None:
        self._saga_id = saga_id
        self._stack: list[Compensation] = []

    def push(self, name: str, action: Callable[[], None]) -> None:
        self._stack.append(Compensation(name, action))

    def __len__(self) -> int:
        return len(self._stack)

    def unwind(self) -> list[tuple[str, Exception]]:
        """Run every pending compensation in reverse order.

        Returns the (name, error) pairs of compensations that failed.
        """
        failures: list[tuple[str, Exception]] = []
        while self._stack:
            step = self._stack.pop()
            try:
                step.action()
            except Exception as exc:
                logger.error(
                    "Compensation failed",
                    saga_id=self._saga_id,
                    step=step.name,
                    error=str(exc),
                )
                failures.append((step.name, exc))
            else:
                logger.info("Compensation applied", saga_id=self._saga_id, step=step.name)
        return failures

    def discard(self) -> None:
        """Forget pending compensations once the saga has committed."""
        self._stack.clear()
