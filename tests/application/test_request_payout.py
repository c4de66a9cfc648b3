"""Integration tests for the vendor balance and payout use cases."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from marketcore.application.change_order_status import ChangeOrderStatusHandler
from marketcore.application.request_payout import RequestPayoutHandler, parse_amount
from marketcore.application.vendor_balance import ShowVendorBalanceHandler
from marketcore.domain.exceptions import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidAmountError,
    NotFoundError,
    PayoutExceedsEarningsError,
)
from marketcore.domain.model.auth import AuthContext
from tests.fakes import FailingNotifier, FakeNotifier, FakePaymentGateway, FakeStore, place_order, uow_factory

ADMIN = AuthContext.admin(1)
VENDOR = AuthContext(user_id=10)


def _deliver(store: FakeStore, order_id: int) -> None:
    handler = ChangeOrderStatusHandler(uow_factory(store), FakeNotifier(), FakePaymentGateway())
    for target in ("confirmed", "processing", "shipped", "delivered"):
        handler.handle(ADMIN, order_id, target)


def _setup(notifier=None, delivered_total: int = 1000):
    """Vendor 1 (10% commission) with ``delivered_total`` in delivered sales."""
    store = FakeStore()
    store.add_account(7)
    store.add_vendor(1, user_id=10, commission_rate="0.10")
    store.add_vendor(2, user_id=11)
    store.add_product(1, price="100.00", stock=1000, vendor_id=1)
    if delivered_total:
        order = place_order(store, items=[{"product_id": 1, "quantity": delivered_total // 100}])
        _deliver(store, order.id)
    payout = RequestPayoutHandler(uow_factory(store), notifier or FakeNotifier(), {"bank_transfer", "wallet"})
    balance = ShowVendorBalanceHandler(uow_factory(store))
    return payout, balance, store


class TestBalance:

    def test_balance_of_delivered_sales(self):
        _, balance, _ = _setup()
        dto = balance.handle(VENDOR, 1)
        assert dto.total_sales == "1000.00"
        assert dto.total_commission == "100.00"
        assert dto.total_paid == "0.00"
        assert dto.available_for_payout == "900.00"

    def test_undelivered_orders_do_not_count(self):
        _, balance, store = _setup()
        place_order(store, items=[{"product_id": 1, "quantity": 3}])
        assert balance.handle(VENDOR, 1).total_sales == "1000.00"

    def test_other_vendor_forbidden(self):
        _, balance, _ = _setup()
        with pytest.raises(ForbiddenError):
            balance.handle(AuthContext(user_id=11), 1)

    def test_admin_may_view(self):
        _, balance, _ = _setup()
        assert balance.handle(ADMIN, 1).vendor_id == 1

    def test_unknown_vendor(self):
        _, balance, _ = _setup()
        with pytest.raises(NotFoundError):
            balance.handle(ADMIN, 99)


class TestRequestPayout:

    def test_payout_sequence(self):
        payout, balance, store = _setup()

        first = payout.handle(VENDOR, 1, Decimal("100"))
        assert first.amount == "100.00"
        assert first.method == "bank_transfer"
        assert first.status == "pending"
        assert balance.handle(VENDOR, 1).available_for_payout == "800.00"

        payout.handle(VENDOR, 1, Decimal("400"), "wallet")
        assert balance.handle(VENDOR, 1).available_for_payout == "400.00"

        with pytest.raises(InsufficientBalanceError):
            payout.handle(VENDOR, 1, Decimal("500"))
        assert len(store.payouts()) == 2

    def test_whole_balance_when_amount_omitted(self):
        payout, balance, _ = _setup()
        dto = payout.handle(VENDOR, 1)
        assert dto.amount == "900.00"
        assert balance.handle(VENDOR, 1).available_for_payout == "0.00"

    def test_nothing_to_pay(self):
        payout, _, _ = _setup(delivered_total=0)
        with pytest.raises(InvalidAmountError):
            payout.handle(VENDOR, 1)

    def test_other_vendor_forbidden(self):
        payout, _, store = _setup()
        with pytest.raises(ForbiddenError):
            payout.handle(AuthContext(user_id=11), 1, Decimal("1"))
        assert store.payouts() == []

    def test_notification_failure_keeps_payout(self):
        payout, _, store = _setup(notifier=FailingNotifier())
        payout.handle(VENDOR, 1, Decimal("10"))
        assert len(store.payouts()) == 1

    def test_concurrent_requests_never_overdraw(self):
        payout, balance, store = _setup()

        def attempt(_):
            try:
                payout.handle(VENDOR, 1, Decimal("300"))
                return True
            except InsufficientBalanceError:
                return False

        with ThreadPoolExecutor(max_workers=6) as pool:
            outcomes = list(pool.map(attempt, range(6)))

        assert outcomes.count(True) == 3
        assert sum(p.amount for p in store.payouts()) == Decimal("900")
        assert balance.handle(VENDOR, 1).available_for_payout == "0.00"


    def test_enormous_amount_is_insufficient(self):
        payout, balance, store = _setup()
        with pytest.raises(InsufficientBalanceError):
            payout.handle(VENDOR, 1, parse_amount("1e30"))
        assert store.payouts() == []
        assert balance.handle(VENDOR, 1).available_for_payout == "900.00"


class TestRefundAfterPayout:

    def test_refund_refused_once_earnings_were_paid_out(self):
        payout, balance, store = _setup(delivered_total=0)
        order = place_order(store, items=[{"product_id": 1, "quantity": 2}])
        _deliver(store, order.id)
        payout.handle(VENDOR, 1, Decimal("18"))
        gateway = FakePaymentGateway()
        status = ChangeOrderStatusHandler(uow_factory(store), FakeNotifier(), gateway)

        with pytest.raises(PayoutExceedsEarningsError):
            status.handle(ADMIN, order.id, "refunded")

        assert store.order(order.id).status.value == "delivered"
        assert gateway.refunds == []
        assert balance.handle(VENDOR, 1).available_for_payout == "162.00"

    def test_refund_without_payouts_goes_through(self):
        _, balance, store = _setup(delivered_total=0)
        order = place_order(store, items=[{"product_id": 1, "quantity": 2}])
        _deliver(store, order.id)
        status = ChangeOrderStatusHandler(uow_factory(store), FakeNotifier(), FakePaymentGateway())

        assert status.handle(ADMIN, order.id, "refunded").status == "refunded"
        assert balance.handle(VENDOR, 1).available_for_payout == "0.00"

    def test_paid_out_total_never_exceeds_earnings(self):
        payout, balance, store = _setup(delivered_total=0)
        kept = place_order(store, items=[{"product_id": 1, "quantity": 2}])
        refunded = place_order(store, items=[{"product_id": 1, "quantity": 2}])
        _deliver(store, kept.id)
        _deliver(store, refunded.id)
        payout.handle(VENDOR, 1, Decimal("180"))
        status = ChangeOrderStatusHandler(uow_factory(store), FakeNotifier(), FakePaymentGateway())

        status.handle(ADMIN, refunded.id, "refunded")

        dto = balance.handle(VENDOR, 1)
        assert Decimal(dto.total_paid) <= Decimal(dto.total_sales) - Decimal(dto.total_commission)
        assert dto.available_for_payout == "0.00"


class TestParseAmount:

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_means_everything(self, raw):
        assert parse_amount(raw) is None

    def test_numeric(self):
        assert parse_amount("12.5") == Decimal("12.5")
        assert parse_amount(3) == Decimal("3")

    @pytest.mark.parametrize("raw", ["abc", True, "NaN", "Infinity"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidAmountError):
            parse_amount(raw)
