"""Tests for the Money value object — integer minor units, currency safety."""

from decimal import Decimal

import pytest
from ordering.exceptions import CurrencyMismatch
from ordering.pricing.money import Money
from protean.exceptions import ValidationError


class TestMoneyConstruction:
    def test_zero(self):
        assert Money.zero("EUR").amount == 0

    def test_default_currency_is_eur(self):
        assert Money(amount=100).currency == "EUR"

    def test_unknown_currency_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Money(amount=100, currency="XYZ")
        assert "currency" in exc.value.messages

    def test_from_major_rounds_half_up(self):
        assert Money.from_major("12.345", "EUR").amount == 1235
        assert Money.from_major("12.344", "EUR").amount == 1234

    def test_from_major_respects_zero_decimal_currencies(self):
        assert Money.from_major("1500", "JPY").amount == 1500

    def test_from_major_respects_three_decimal_currencies(self):
        assert Money.from_major("1.2345", "KWD").amount == 1235

    def test_from_major_accepts_decimal(self):
        assert Money.from_major(Decimal("0.10"), "EUR").amount == 10


class TestMoneyArithmetic:
    def test_add(self):
        total = Money(amount=1050, currency="EUR") + Money(amount=250, currency="EUR")
        assert total == Money(amount=1300, currency="EUR")

    def test_subtract(self):
        assert (Money(amount=1000) - Money(amount=400)).amount == 600

    def test_multiply_by_quantity(self):
        assert (Money(amount=1250) * 4).amount == 5000
        assert (3 * Money(amount=250)).amount == 750

    def test_multiply_by_float_rejected(self):
        with pytest.raises(TypeError):
            Money(amount=1250) * 1.5

    def test_adding_different_currencies_rejected(self):
        with pytest.raises(CurrencyMismatch):
            Money(amount=100, currency="EUR") + Money(amount=100, currency="USD")

    def test_comparing_different_currencies_rejected(self):
        with pytest.raises(CurrencyMismatch):
            Money(amount=100, currency="EUR") < Money(amount=100, currency="GBP")

    def test_comparisons(self):
        small, large = Money(amount=100), Money(amount=200)
        assert small < large
        assert small <= Money(amount=100)
        assert large > small
        assert large >= Money(amount=200)

    def test_ten_cents_added_thirty_times_is_exact(self):
        total = Money.zero()
        for _ in range(30):
            total = total + Money.from_major("0.10")
        assert total.amount == 300


class TestMoneyPresentation:
    def test_format_eur(self):
        assert Money(amount=2500, currency="EUR").format() == "25.00 EUR"

    def test_format_jpy(self):
        assert Money(amount=1500, currency="JPY").format() == "1500 JPY"

    def test_to_major(self):
        assert Money(amount=1999).to_major() == Decimal("19.99")
