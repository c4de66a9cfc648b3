"""Value objects: money and quantities, plus the cent conversions storage uses.

Both are frozen and validate on construction, so an order line can never
hold a negative price or a zero quantity.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from marketcore.domain.exceptions import ValidationError

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000.00")


def to_cents(amount: Decimal) -> int:
    """Convert a Decimal amount (possibly negative) to integer cents."""
    return int(amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


@dataclass(frozen=True)
class Money:
    """A non-negative amount at cent precision, tagged with its currency.

    Construction rounds half-up to the cent, so ``scaled`` results (line
    commissions) are already settled amounts.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise ValidationError(f"Money amount cannot be negative, got {self.amount}")
        try:
            rounded = self.amount.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation as exc:
            raise ValidationError(f"Money amount out of range: {self.amount}") from exc
        object.__setattr__(self, "amount", rounded)

    @staticmethod
    def of(amount: str | float | int | Decimal, currency: str = "USD") -> Money:
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc
        if not value.is_finite():
            raise ValidationError(f"Invalid money amount: {amount!r}")
        if value > MAX_AMOUNT:
            raise ValidationError(f"Money amount exceeds {MAX_AMOUNT}: {amount!r}")
        return Money(value, currency)

    @staticmethod
    def zero(currency: str = "USD") -> Money:
        return Money(Decimal(0), currency)

    @property
    def cents(self) -> int:
        return to_cents(self.amount)

    def __add__(self, other: Money) -> Money:
        if self.currency != other.currency:
            raise ValidationError(f"Cannot combine {self.currency} with {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, quantity: int) -> Money:
        if not isinstance(quantity, int) or isinstance(quantity, bool):
            raise TypeError(f"Can only multiply Money by int, got {type(quantity).__name__}")
        return Money(self.amount * quantity, self.currency)

    def scaled(self, rate: Decimal) -> Money:
        """``self * rate`` rounded half-up to the cent."""
        return Money(self.amount * rate, self.currency)

    def in_currency(self, currency: str) -> Money:
        """Same amount under another currency label; nothing is converted."""
        return Money(self.amount, currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


@dataclass(frozen=True)
class Quantity:
    """Units on an order line; always a positive int."""

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(f"Quantity must be an integer, got {type(self.value).__name__}")
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)
