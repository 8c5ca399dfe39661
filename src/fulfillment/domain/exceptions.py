"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """Malformed input or a violated business rule."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InsufficientStockError(DomainException):
    """No warehouse can satisfy a line item."""

    def __init__(self, message: str, product_id: str | None = None) -> None:
        super().__init__(message)
        self.product_id = product_id


class PaymentFailedError(DomainException):
    """The payment gateway rejected the payment or did not answer in time."""


class InvalidStateTransitionError(DomainException):
    """An order or saga was asked to move to a state it cannot reach."""


class ConsistencyViolationError(DomainException):
    """Global stock looked sufficient but no warehouse could be selected.

    Points at a bug or a concurrent oversell and must be alerted on
    separately from ordinary stock-outs.
    """


class CollaboratorError(DomainException):
    """An external service answered with an error or could not be reached."""

    def __init__(self, service: str, message: str, transient: bool = False) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.transient = transient


class OrderAlreadyExistsError(ValidationError):
    """An order with the same id was already persisted."""
