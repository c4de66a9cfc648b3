"""Unit tests for domain value objects."""

from decimal import Decimal

import pytest

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.value_objects import Money, Quantity, from_cents, to_cents


class TestMoney:

    def test_defaults_to_usd(self):
        m = Money(Decimal("10.50"))
        assert m.amount == Decimal("10.50")
        assert m.currency == "USD"

    @pytest.mark.parametrize("raw, expected", [("25.99", "25.99"), (10, "10.00"), (Decimal("0.1"), "0.10")])
    def test_of(self, raw, expected):
        assert Money.of(raw).amount == Decimal(expected)

    @pytest.mark.parametrize("raw", ["ten", "NaN", "Infinity"])
    def test_of_rejects_garbage(self, raw):
        with pytest.raises(ValidationError, match="Invalid money amount"):
            Money.of(raw)

    def test_of_rejects_amounts_above_the_cap(self):
        assert Money.of("1000000000").amount == Decimal("1000000000.00")
        with pytest.raises(ValidationError, match="exceeds"):
            Money.of("1e30")

    def test_unroundable_amount_is_a_validation_error(self):
        with pytest.raises(ValidationError, match="out of range"):
            Money(Decimal("1e30"))

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(Decimal("-1"))

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError, match="must be a Decimal"):
            Money(10.5)  # type: ignore[arg-type]

    def test_rounds_half_up_to_cents(self):
        assert Money(Decimal("1.005")).amount == Decimal("1.01")

    def test_addition(self):
        assert Money.of("10") + Money.of("5.50") == Money.of("15.50")

    def test_currency_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money.of("1", "USD") + Money.of("1", "SAR")

    def test_multiplication_by_int_only(self):
        assert Money.of("2.50") * 4 == Money.of("10")
        with pytest.raises(TypeError):
            Money.of("2.50") * 1.5  # type: ignore[operator]

    def test_scaled_for_commission(self):
        assert Money.of("33.33").scaled(Decimal("0.10")) == Money.of("3.33")
        assert Money.of("0.05").scaled(Decimal("0.10")) == Money.of("0.01")

    def test_in_currency_relabels_without_conversion(self):
        assert Money.of("12.00").in_currency("SAR") == Money.of("12.00", "SAR")

    def test_cents_and_str(self):
        m = Money.of("12.34")
        assert m.cents == 1234
        assert str(m) == "12.34 USD"
        assert Money.zero("SAR").cents == 0


class TestQuantity:

    def test_positive(self):
        assert int(Quantity(3)) == 3

    @pytest.mark.parametrize("value", [0, -1])
    def test_non_positive_rejected(self, value):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(value)

    @pytest.mark.parametrize("value", [True, 1.0, "2"])
    def test_non_integer_rejected(self, value):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(value)


class TestCents:

    def test_round_trip_of_a_price(self):
        assert to_cents(Decimal("19.99")) == 1999
        assert from_cents(1999) == Decimal("19.99")

    def test_negative_amounts(self):
        assert to_cents(Decimal("-0.015")) == -2
