"""Unit tests for the PayoutBalanceEngine domain service."""

from decimal import Decimal

import pytest

from marketcore.domain.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    NotFoundError,
    PayoutExceedsEarningsError,
    ValidationError,
)
from marketcore.domain.model.order import CustomerRef, Order, OrderItem, OrderStatus
from marketcore.domain.model.value_objects import Money, Quantity
from marketcore.domain.model.vendor import PayoutStatus, VendorBalance, VendorPayout
from marketcore.domain.service.payout_balance_engine import PayoutBalanceEngine
from tests.fakes import FakeOrderRepository, FakePayoutRepository, FakeStore, FakeVendorRepository


def _order(vendor_id: int, total: str, status: OrderStatus, rate: str = "0.10") -> Order:
    order = Order.place(
        customer=CustomerRef(user_id=2),
        items=[
            OrderItem(
                product_id=1,
                sku="1",
                product_name="Widget",
                quantity=Quantity(1),
                unit_price=Money.of(total),
                vendor_id=vendor_id,
                commission_rate=Decimal(rate),
            )
        ],
        payment_method="credit_card",
        currency="USD",
        shipping_fee=Money.of("0"),
        discount_amount=Money.of("0"),
        reservation_token=None,
    )
    order.status = status
    return order


def _setup(*orders: Order) -> tuple[PayoutBalanceEngine, FakeStore]:
    store = FakeStore()
    store.add_vendor(1, user_id=10, commission_rate="0.10")
    repo = FakeOrderRepository(store)
    for order in orders:
        repo.add(order)
    engine = PayoutBalanceEngine(
        FakeVendorRepository(store),
        repo,
        FakePayoutRepository(store),
        {"bank_transfer", "wallet"},
    )
    return engine, store


class TestBalance:

    def test_only_delivered_orders_count(self):
        engine, _ = _setup(
            _order(1, "1000.00", OrderStatus.DELIVERED),
            _order(1, "500.00", OrderStatus.SHIPPED),
            _order(1, "70.00", OrderStatus.REFUNDED),
            _order(2, "999.00", OrderStatus.DELIVERED),
        )
        balance = engine.balance(1)
        assert balance.total_sales == Decimal("1000.00")
        assert balance.total_commission == Decimal("100.00")
        assert balance.total_paid == Decimal("0.00")
        assert balance.available_for_payout == Decimal("900.00")

    def test_commission_uses_rate_snapshot_on_line(self):
        engine, _ = _setup(_order(1, "200.00", OrderStatus.DELIVERED, rate="0.25"))
        assert engine.balance(1).total_commission == Decimal("50.00")

    def test_rejected_payouts_do_not_count(self):
        engine, store = _setup(_order(1, "100.00", OrderStatus.DELIVERED))
        store.data["payouts"][1] = VendorPayout(1, 1, Decimal("50"), "bank_transfer", PayoutStatus.REJECTED)
        store.data["payouts"][2] = VendorPayout(2, 1, Decimal("20"), "bank_transfer", PayoutStatus.PAID)
        assert engine.balance(1).total_paid == Decimal("20")

    def test_unknown_vendor(self):
        engine, _ = _setup()
        with pytest.raises(NotFoundError):
            engine.balance(99)

    def test_available_never_negative(self):
        balance = VendorBalance(1, Decimal("10"), Decimal("1"), Decimal("20"))
        assert balance.raw_available == Decimal("-11")
        assert balance.available_for_payout == Decimal("0.00")


class TestRequestPayout:

    def test_sequence_of_requests(self):
        # 1000 delivered at 10% commission: 900 available.
        engine, store = _setup(_order(1, "1000.00", OrderStatus.DELIVERED))

        first = engine.request_payout(1, Decimal("100"), "bank_transfer")
        assert first.status == PayoutStatus.PENDING
        assert first.total_sales == Decimal("1000.00")
        assert first.total_commission == Decimal("100.00")
        assert engine.balance(1).available_for_payout == Decimal("800.00")

        engine.request_payout(1, Decimal("400"), "wallet")
        assert engine.balance(1).available_for_payout == Decimal("400.00")

        with pytest.raises(InsufficientBalanceError):
            engine.request_payout(1, Decimal("400.01"), "bank_transfer")
        assert len(store.payouts()) == 2

    def test_no_amount_takes_everything(self):
        engine, _ = _setup(_order(1, "50.00", OrderStatus.DELIVERED))
        payout = engine.request_payout(1, None, "bank_transfer")
        assert payout.amount == Decimal("45.00")
        assert engine.balance(1).available_for_payout == Decimal("0.00")

    def test_nothing_available(self):
        engine, _ = _setup()
        with pytest.raises(InvalidAmountError, match="No balance"):
            engine.request_payout(1, None, "bank_transfer")

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(self, amount):
        engine, _ = _setup(_order(1, "50.00", OrderStatus.DELIVERED))
        with pytest.raises(InvalidAmountError):
            engine.request_payout(1, Decimal(amount), "bank_transfer")

    def test_unknown_method(self):
        engine, _ = _setup(_order(1, "50.00", OrderStatus.DELIVERED))
        with pytest.raises(ValidationError) as exc_info:
            engine.request_payout(1, Decimal("1"), "cheque")
        assert "method" in exc_info.value.errors

    def test_enormous_amount_is_insufficient(self):
        engine, store = _setup(_order(1, "50.00", OrderStatus.DELIVERED))
        with pytest.raises(InsufficientBalanceError):
            engine.request_payout(1, Decimal("1e30"), "bank_transfer")
        assert store.payouts() == []

    def test_amount_rounded_to_cents(self):
        engine, _ = _setup(_order(1, "50.00", OrderStatus.DELIVERED))
        assert engine.request_payout(1, Decimal("12.344"), "bank_transfer").amount == Decimal("12.34")


class TestRefundGuard:

    def test_refund_allowed_while_unpaid(self):
        order = _order(1, "200.00", OrderStatus.DELIVERED)
        engine, _ = _setup(order)
        engine.ensure_refund_covered(order)

    def test_refund_refused_after_payout_of_its_earnings(self):
        order = _order(1, "200.00", OrderStatus.DELIVERED)
        engine, _ = _setup(order)
        engine.request_payout(1, Decimal("18.00"), "bank_transfer")
        with pytest.raises(PayoutExceedsEarningsError, match="18.00"):
            engine.ensure_refund_covered(order)

    def test_refund_allowed_when_other_sales_cover_payouts(self):
        refunded = _order(1, "200.00", OrderStatus.DELIVERED)
        engine, _ = _setup(refunded, _order(1, "200.00", OrderStatus.DELIVERED))
        engine.request_payout(1, Decimal("180.00"), "bank_transfer")
        engine.ensure_refund_covered(refunded)

    def test_vendorless_order_needs_no_check(self):
        order = _order(1, "200.00", OrderStatus.DELIVERED)
        order.items[0].vendor_id = None
        engine, _ = _setup()
        engine.ensure_refund_covered(order)
