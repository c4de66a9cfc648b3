"""Vendor aggregate and the payouts issued to it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from marketcore.domain.exceptions import ValidationError


class PayoutStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    REJECTED = "rejected"


@dataclass
class Vendor:
    """A seller on the marketplace.

    ``commission_rate`` is the marketplace's cut of each sale, as a fraction
    (``Decimal("0.10")`` for ten percent).
    """

    id: int
    user_id: int
    name: str
    commission_rate: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.commission_rate <= Decimal("1"):
            raise ValidationError("Commission rate must be between 0 and 1")

    def is_owned_by(self, user_id: int | None) -> bool:
        return user_id is not None and self.user_id == user_id


@dataclass
class VendorPayout:
    """A payout request.  Immutable once created, except for ``status``."""

    id: int | None
    vendor_id: int
    amount: Decimal
    method: str
    status: PayoutStatus = PayoutStatus.PENDING
    total_sales: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def counts_against_balance(self) -> bool:
        return self.status != PayoutStatus.REJECTED


@dataclass(frozen=True)
class VendorBalance:
    """Derived balance snapshot; never persisted."""

    vendor_id: int
    total_sales: Decimal
    total_commission: Decimal
    total_paid: Decimal

    @property
    def raw_available(self) -> Decimal:
        return self.total_sales - self.total_commission - self.total_paid

    @property
    def available_for_payout(self) -> Decimal:
        # Reported floored; a refund guard keeps the raw figure from going negative.
        return max(Decimal("0.00"), self.raw_available)
