"""Order aggregate - the core of the domain.

The Order is an aggregate root that owns its line items and its status
history.  Status changes go through ``OrderStateMachine``; the aggregate only
records them.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FAILED = "failed"

    @classmethod
    def parse(cls, raw: str) -> OrderStatus:
        try:
            return cls(raw.strip().lower())
        except (AttributeError, ValueError):
            raise ValidationError(
                "Invalid order status", errors={"status": "Invalid order status"}
            ) from None


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class CustomerRef:
    """Exactly one of ``user_id`` or ``guest_email`` is set."""

    user_id: int | None = None
    guest_email: str | None = None

    def __post_init__(self) -> None:
        if (self.user_id is None) == (self.guest_email is None):
            raise ValidationError("Order needs either a user id or a guest email")

    def __str__(self) -> str:
        return f"user #{self.user_id}" if self.user_id is not None else str(self.guest_email)


@dataclass(frozen=True)
class AddressRef:
    """Either a stored address id or an inline address mapping."""

    address_id: int | None = None
    inline: dict[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        if self.address_id is not None:
            return {"address_id": self.address_id}
        return dict(self.inline or {})


@dataclass
class OrderItem:
    """Captures the product snapshot at order-creation time.

    The price, name, vendor and commission rate never change afterwards
    (price lock preserved).
    """

    product_id: int
    sku: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time
    variant_id: int | None = None
    vendor_id: int | None = None
    commission_rate: Decimal = Decimal("0")

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value

    @property
    def commission_amount(self) -> Money:
        return self.line_total.scaled(self.commission_rate)


@dataclass(frozen=True)
class StatusChange:
    from_status: OrderStatus | None
    to_status: OrderStatus
    changed_at: datetime
    reason: str | None = None
    actor_id: int | None = None


def generate_order_number(now: datetime | None = None) -> str:
    """``ORD-20260118-3FA9C2`` style human-facing order number."""
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


MAX_LINE_ITEMS = 50


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use ``Order.place()`` for new orders.  The ``__init__`` is intentionally
    simple so the repository can reconstitute persisted orders without
    re-validating.
    """

    id: int | None
    order_number: str
    customer: CustomerRef
    items: list[OrderItem]
    payment_method: str
    currency: str
    shipping_fee: Money
    discount_amount: Money
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    client_provided_id: str | None = None
    request_fingerprint: str | None = None
    reservation_token: str | None = None
    shipping_address: AddressRef | None = None
    billing_address: AddressRef | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = 0
    status_history: list[StatusChange] = field(default_factory=list)

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def place(
        customer: CustomerRef,
        items: list[OrderItem],
        payment_method: str,
        currency: str,
        shipping_fee: Money,
        discount_amount: Money,
        reservation_token: str | None,
        client_provided_id: str | None = None,
        request_fingerprint: str | None = None,
        shipping_address: AddressRef | None = None,
        billing_address: AddressRef | None = None,
        notes: str | None = None,
        actor_id: int | None = None,
    ) -> Order:
        """Create a new order in its initial state."""
        if not items:
            raise ValidationError("Order must contain at least one item", errors={"items": "Order items are required"})
        if len(items) > MAX_LINE_ITEMS:
            raise ValidationError(f"Maximum {MAX_LINE_ITEMS} items per order")

        now = datetime.now(timezone.utc)
        order = Order(
            id=None,
            order_number=generate_order_number(now),
            customer=customer,
            items=list(items),
            payment_method=payment_method,
            currency=currency,
            shipping_fee=shipping_fee,
            discount_amount=discount_amount,
            client_provided_id=client_provided_id,
            request_fingerprint=request_fingerprint,
            reservation_token=reservation_token,
            shipping_address=shipping_address,
            billing_address=billing_address,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        order.status_history.append(
            StatusChange(None, OrderStatus.PENDING, now, "Order placed", actor_id)
        )
        return order

    # --- Recording (callers: OrderStateMachine) -------------------------------

    def record_status(
        self,
        new_status: OrderStatus,
        reason: str | None = None,
        actor_id: int | None = None,
    ) -> StatusChange:
        now = datetime.now(timezone.utc)
        change = StatusChange(self.status, new_status, now, reason, actor_id)
        self.status = new_status
        self.updated_at = now
        self.status_history.append(change)
        return change

    def record_payment(self, payment_status: PaymentStatus) -> None:
        self.payment_status = payment_status
        self.updated_at = datetime.now(timezone.utc)

    # --- Queries --------------------------------------------------------------

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def subtotal(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def grand_total(self) -> Money:
        gross = self.subtotal.amount + self.shipping_fee.amount - self.discount_amount.amount
        return Money(max(gross, Decimal("0")), self.currency)

    @property
    def vendor_ids(self) -> set[int]:
        return {item.vendor_id for item in self.items if item.vendor_id is not None}

    def is_placed_by(self, user_id: int | None) -> bool:
        return user_id is not None and self.customer.user_id == user_id

    def items_for_vendor(self, vendor_id: int) -> list[OrderItem]:
        return [item for item in self.items if item.vendor_id == vendor_id]
