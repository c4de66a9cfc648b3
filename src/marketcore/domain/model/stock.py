"""Stock records and the reservations held against them.

Each sku (a product, or one variant of it) has one StockRecord that knows
how many units can still be sold and how many are held by open orders.
A Reservation groups the holds taken for a single order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from marketcore.domain.exceptions import ConflictError, InsufficientStockError, ValidationError


@dataclass
class StockRecord:
    """Aggregate root for stock tracking.

    Invariants:
    - ``available_quantity`` is always >= 0
    - ``reserved_quantity`` is always >= 0

    ``available_quantity`` already excludes held units: reserving moves units
    from available to reserved, committing drops them from reserved, and
    releasing moves them back.
    """

    sku: str
    product_id: int
    variant_id: int | None = None
    available_quantity: int = 0
    reserved_quantity: int = 0
    manage_stock: bool = True

    def hold(self, quantity: int) -> None:
        """Take ``quantity`` units out of the sellable pool."""
        if quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")
        if not self.manage_stock:
            return
        if quantity > self.available_quantity:
            raise InsufficientStockError(self.sku, quantity, self.available_quantity)
        self.available_quantity -= quantity
        self.reserved_quantity += quantity

    def unhold(self, quantity: int) -> None:
        """Return held units to the sellable pool (order cancelled)."""
        if quantity <= 0:
            raise ValidationError("Release quantity must be positive")
        if not self.manage_stock:
            return
        if quantity > self.reserved_quantity:
            raise ConflictError(
                f"Cannot release {quantity} of {self.sku} "
                f"- only {self.reserved_quantity} currently reserved"
            )
        self.reserved_quantity -= quantity
        self.available_quantity += quantity

    def settle(self, quantity: int) -> None:
        """Make a hold permanent; the units have been sold."""
        if quantity <= 0:
            raise ValidationError("Commit quantity must be positive")
        if not self.manage_stock:
            return
        if quantity > self.reserved_quantity:
            raise ConflictError(
                f"Cannot commit {quantity} of {self.sku} "
                f"- only {self.reserved_quantity} currently reserved"
            )
        self.reserved_quantity -= quantity

    def restock(self, quantity: int) -> None:
        """Put previously sold units back on sale (refund of a shipped order)."""
        if quantity <= 0:
            raise ValidationError("Restock quantity must be positive")
        if not self.manage_stock:
            return
        self.available_quantity += quantity

    def set_available(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")
        self.available_quantity = quantity


class ReservationState(Enum):
    HELD = "held"
    COMMITTED = "committed"
    RELEASED = "released"
    RESTOCKED = "restocked"


@dataclass(frozen=True)
class ReservationLine:
    sku: str
    quantity: int
    managed: bool = True


@dataclass
class Reservation:
    """The stock held for one order, identified by ``token``."""

    token: str
    lines: list[ReservationLine]
    order_id: int | None = None
    state: ReservationState = ReservationState.HELD
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    settled_at: datetime | None = None

    @property
    def is_held(self) -> bool:
        return self.state == ReservationState.HELD

    @property
    def is_committed(self) -> bool:
        return self.state == ReservationState.COMMITTED

    def mark(self, state: ReservationState) -> None:
        self.state = state
        self.settled_at = datetime.now(timezone.utc)
