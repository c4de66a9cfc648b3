"""Unit tests for the StockRecord aggregate."""

import pytest

from marketcore.domain.exceptions import ConflictError, InsufficientStockError, ValidationError
from marketcore.domain.model.stock import StockRecord


def _record(available: int = 10, reserved: int = 0, managed: bool = True) -> StockRecord:
    return StockRecord(
        sku="1",
        product_id=1,
        available_quantity=available,
        reserved_quantity=reserved,
        manage_stock=managed,
    )


class TestHold:

    def test_hold_moves_units_to_reserved(self):
        record = _record(available=10)
        record.hold(3)
        assert record.available_quantity == 7
        assert record.reserved_quantity == 3

    def test_hold_everything(self):
        record = _record(available=2)
        record.hold(2)
        assert record.available_quantity == 0

    def test_hold_more_than_available_rejected(self):
        record = _record(available=1)
        with pytest.raises(InsufficientStockError) as exc_info:
            record.hold(2)
        assert exc_info.value.requested == 2
        assert exc_info.value.available == 1
        assert record.available_quantity == 1

    def test_hold_zero_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            _record().hold(0)

    def test_unmanaged_record_is_untouched(self):
        record = _record(available=0, managed=False)
        record.hold(50)
        assert record.available_quantity == 0
        assert record.reserved_quantity == 0


class TestUnholdAndSettle:

    def test_unhold_returns_units(self):
        record = _record(available=7, reserved=3)
        record.unhold(3)
        assert record.available_quantity == 10
        assert record.reserved_quantity == 0

    def test_unhold_more_than_reserved_rejected(self):
        with pytest.raises(ConflictError, match="only 1 currently reserved"):
            _record(reserved=1).unhold(2)

    def test_settle_drops_reserved_only(self):
        record = _record(available=7, reserved=3)
        record.settle(3)
        assert record.available_quantity == 7
        assert record.reserved_quantity == 0

    def test_settle_more_than_reserved_rejected(self):
        with pytest.raises(ConflictError):
            _record(reserved=0).settle(1)

    def test_restock_adds_available(self):
        record = _record(available=7)
        record.restock(3)
        assert record.available_quantity == 10


class TestSetAvailable:

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            _record().set_available(-1)

    def test_sets_value(self):
        record = _record()
        record.set_available(42)
        assert record.available_quantity == 42
