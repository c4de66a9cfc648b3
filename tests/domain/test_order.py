"""Unit tests for the Order aggregate and the request draft."""

import re
from decimal import Decimal

import pytest

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.draft import DraftItem, OrderDraft
from marketcore.domain.model.order import (
    CustomerRef,
    Order,
    OrderItem,
    OrderStatus,
    generate_order_number,
)
from marketcore.domain.model.value_objects import Money, Quantity


def _item(price: str = "10.00", qty: int = 1, vendor_id: int | None = None, rate: str = "0") -> OrderItem:
    return OrderItem(
        product_id=1,
        sku="1",
        product_name="Widget",
        quantity=Quantity(qty),
        unit_price=Money.of(price),
        vendor_id=vendor_id,
        commission_rate=Decimal(rate),
    )


def _place(items: list[OrderItem], shipping: str = "0", discount: str = "0") -> Order:
    return Order.place(
        customer=CustomerRef(user_id=1),
        items=items,
        payment_method="credit_card",
        currency="USD",
        shipping_fee=Money.of(shipping),
        discount_amount=Money.of(discount),
        reservation_token=None,
    )


class TestTotals:

    def test_grand_total(self):
        order = _place([_item("10.00", 2), _item("2.50", 1)], shipping="5", discount="1")
        assert order.subtotal == Money.of("22.50")
        assert order.grand_total == Money.of("26.50")

    def test_grand_total_never_negative(self):
        order = _place([_item("10.00")], discount="50")
        assert order.grand_total == Money.of("0")

    def test_line_commission(self):
        item = _item("33.33", 3, vendor_id=5, rate="0.10")
        assert item.line_total == Money.of("99.99")
        assert item.commission_amount == Money.of("10.00")


class TestPlace:

    def test_requires_items(self):
        with pytest.raises(ValidationError):
            _place([])

    def test_line_limit(self):
        with pytest.raises(ValidationError, match="Maximum 50"):
            _place([_item()] * 51)

    def test_starts_pending(self):
        order = _place([_item()])
        assert order.status == OrderStatus.PENDING
        assert order.version == 0
        assert order.status_history[0].reason == "Order placed"

    def test_vendor_queries(self):
        order = _place([_item(vendor_id=3), _item(vendor_id=4), _item()])
        assert order.vendor_ids == {3, 4}
        assert len(order.items_for_vendor(3)) == 1
        assert order.is_placed_by(1)
        assert not order.is_placed_by(None)


class TestCustomerRef:

    def test_needs_exactly_one(self):
        with pytest.raises(ValidationError):
            CustomerRef()
        with pytest.raises(ValidationError):
            CustomerRef(user_id=1, guest_email="a@b.co")


class TestOrderNumber:

    def test_format(self):
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", generate_order_number())


class TestOrderStatusParse:

    def test_case_insensitive(self):
        assert OrderStatus.parse(" Shipped ") == OrderStatus.SHIPPED

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc_info:
            OrderStatus.parse("lost")
        assert exc_info.value.errors == {"status": "Invalid order status"}


class TestDraft:

    def test_aliases(self):
        draft = OrderDraft.from_payload({"items": [{"id": 5}], "email": "x@y.zz"})
        assert draft.items == [DraftItem(product_id=5, quantity=1)]
        assert draft.guest_email == "x@y.zz"

    def test_never_raises_on_junk(self):
        draft = OrderDraft.from_payload({"items": ["junk", 3]})
        assert draft.items == [DraftItem(None, None), DraftItem(None, None)]
