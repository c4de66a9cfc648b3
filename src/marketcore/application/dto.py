"""Data Transfer Objects - plain containers that cross layer boundaries.

DTOs carry data between the CLI / api layers and the application layer
without exposing domain internals.  Amounts are rendered as two-decimal
strings so they survive JSON unchanged.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

from marketcore.domain.model.order import Order
from marketcore.domain.model.stock import StockRecord
from marketcore.domain.model.vendor import VendorBalance, VendorPayout


def _amount(value: Decimal) -> str:
    return f"{value:.2f}"


@dataclass(frozen=True)
class OrderItemDTO:
    product_id: int
    variant_id: int | None
    sku: str
    product_name: str
    vendor_id: int | None
    quantity: int
    unit_price: str
    line_total: str


@dataclass(frozen=True)
class StatusChangeDTO:
    from_status: str | None
    to_status: str
    changed_at: str
    reason: str | None


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as returned to callers."""

    id: int
    order_number: str
    status: str
    payment_status: str
    user_id: int | None
    guest_email: str | None
    items: list[OrderItemDTO]
    currency: str
    payment_method: str
    subtotal: str
    shipping_fee: str
    discount_amount: str
    grand_total: str
    client_provided_id: str | None
    notes: str | None
    created_at: str
    status_history: list[StatusChangeDTO]

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        return OrderDTO(
            id=order.id,  # type: ignore[arg-type]
            order_number=order.order_number,
            status=order.status.value,
            payment_status=order.payment_status.value,
            user_id=order.customer.user_id,
            guest_email=order.customer.guest_email,
            items=[
                OrderItemDTO(
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    sku=item.sku,
                    product_name=item.product_name,
                    vendor_id=item.vendor_id,
                    quantity=item.quantity.value,
                    unit_price=_amount(item.unit_price.amount),
                    line_total=_amount(item.line_total.amount),
                )
                for item in order.items
            ],
            currency=order.currency,
            payment_method=order.payment_method,
            subtotal=_amount(order.subtotal.amount),
            shipping_fee=_amount(order.shipping_fee.amount),
            discount_amount=_amount(order.discount_amount.amount),
            grand_total=_amount(order.grand_total.amount),
            client_provided_id=order.client_provided_id,
            notes=order.notes,
            created_at=order.created_at.isoformat(),
            status_history=[
                StatusChangeDTO(
                    from_status=change.from_status.value if change.from_status else None,
                    to_status=change.to_status.value,
                    changed_at=change.changed_at.isoformat(),
                    reason=change.reason,
                )
                for change in order.status_history
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PlacedOrderDTO:
    """Result of order creation.  ``created`` is False for an idempotent replay."""

    order: OrderDTO
    created: bool


@dataclass(frozen=True)
class VendorBalanceDTO:
    vendor_id: int
    total_sales: str
    total_commission: str
    total_paid: str
    available_for_payout: str

    @staticmethod
    def from_balance(balance: VendorBalance) -> VendorBalanceDTO:
        return VendorBalanceDTO(
            vendor_id=balance.vendor_id,
            total_sales=_amount(balance.total_sales),
            total_commission=_amount(balance.total_commission),
            total_paid=_amount(balance.total_paid),
            available_for_payout=_amount(balance.available_for_payout),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PayoutDTO:
    payout_id: int
    vendor_id: int
    amount: str
    method: str
    status: str
    created_at: str

    @staticmethod
    def from_payout(payout: VendorPayout) -> PayoutDTO:
        return PayoutDTO(
            payout_id=payout.id,  # type: ignore[arg-type]
            vendor_id=payout.vendor_id,
            amount=_amount(payout.amount),
            method=payout.method,
            status=payout.status.value,
            created_at=payout.created_at.isoformat(),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StockLineDTO:
    sku: str
    product_id: int
    variant_id: int | None
    available: int
    reserved: int
    manage_stock: bool

    @staticmethod
    def from_record(record: StockRecord) -> StockLineDTO:
        return StockLineDTO(
            sku=record.sku,
            product_id=record.product_id,
            variant_id=record.variant_id,
            available=record.available_quantity,
            reserved=record.reserved_quantity,
            manage_stock=record.manage_stock,
        )
