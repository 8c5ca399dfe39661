"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from fulfillment.domain.exceptions import ValidationError

DEFAULT_CURRENCY = "INR"

_CENTS = Decimal("0.01")
_PINCODE_PATTERN = re.compile(r"^[1-9][0-9]{5}$")


@dataclass(frozen=True)
class Money:
    """Monetary amount with currency.

    Uses Decimal to avoid floating-point rounding errors that would be
    unacceptable in financial calculations.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    # --- Arithmetic helpers ---------------------------------------------------

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount <= other.amount

    def rounded(self) -> Money:
        return Money(self.amount.quantize(_CENTS, rounding=ROUND_HALF_UP), self.currency)

    def convert(self, currency: str, rate: Decimal) -> Money:
        """Convert into *currency*, where ``rate`` units of ours buy one of theirs."""
        if rate <= 0:
            raise ValidationError(f"Conversion rate must be positive, got {rate}")
        return Money(self.amount / rate, currency).rounded()

    # --- Display --------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:.2f}"

    # --- Internal helpers -----------------------------------------------------

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def of(amount: str | float | int | Decimal, currency: str = DEFAULT_CURRENCY) -> Money:
        """Convenient factory that coerces to Decimal safely."""
        try:
            return Money(Decimal(str(amount)), currency)
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> Money:
        return Money(Decimal("0.00"), currency)


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Enforces the invariant that you cannot order zero or negative items.
    """

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


class ShippingMode(Enum):
    STANDARD = "standard"
    EXPRESS = "express"

    @staticmethod
    def parse(raw: str | ShippingMode) -> ShippingMode:
        if isinstance(raw, ShippingMode):
            return raw
        try:
            return ShippingMode(str(raw).strip().lower())
        except ValueError as exc:
            raise ValidationError(
                f"Unknown shipping mode {raw!r} (expected 'standard' or 'express')"
            ) from exc


class PaymentMethod(Enum):
    COD = "cod"
    CARD = "card"
    PAYPAL = "paypal"

    @property
    def uses_gateway(self) -> bool:
        return self is not PaymentMethod.COD

    @staticmethod
    def parse(raw: str | PaymentMethod) -> PaymentMethod:
        if isinstance(raw, PaymentMethod):
            return raw
        try:
            return PaymentMethod(str(raw).strip().lower())
        except ValueError as exc:
            raise ValidationError(f"Unknown payment method {raw!r}") from exc


@dataclass(frozen=True)
class Address:
    """A validated Indian shipping address.

    Only these fields are ever copied into an order snapshot; anything
    else the client sends is dropped at the boundary.
    """

    street: str
    city: str
    state: str
    pincode: str
    country: str = "India"

    def __post_init__(self) -> None:
        for name in ("street", "city", "state", "country"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Address {name} is required")
        if not isinstance(self.pincode, str) or not _PINCODE_PATTERN.match(self.pincode):
            raise ValidationError(
                f"Pincode must be a valid 6-digit Indian pincode, got {self.pincode!r}"
            )

    @staticmethod
    def from_dict(raw: dict) -> Address:
        """Build from untrusted input, accepting ``zipCode`` as a pincode alias."""
        if not isinstance(raw, dict):
            raise ValidationError("Address must be an object")
        pincode = raw.get("pincode") or raw.get("zipCode") or raw.get("zip_code") or ""
        return Address(
            street=str(raw.get("street", "")).strip(),
            city=str(raw.get("city", "")).strip(),
            state=str(raw.get("state", "")).strip(),
            pincode=str(pincode).strip(),
            country=str(raw.get("country", "India")).strip(),
        )

    def to_dict(self) -> dict:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "country": self.country,
        }


@dataclass(frozen=True)
class Destination:
    """The part of an address that matters for allocation and quoting.

    Unlike ``Address`` it tolerates a missing pincode or state, e.g. when
    a shopper browses the catalog before entering a delivery pincode.
    """

    pincode: str | None
    state: str | None = None
    city: str | None = None

    @staticmethod
    def of(address: Address) -> Destination:
        return Destination(pincode=address.pincode, state=address.state, city=address.city)
