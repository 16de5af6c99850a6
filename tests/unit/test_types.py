"""Money helpers: coercion, rounding and currency validation."""

from decimal import Decimal

import pytest

from ledger_kernel.db.types import is_valid_currency, round_money, to_money, validate_currency
from ledger_kernel.exceptions import InvalidCurrencyError


class TestToMoney:

    def test_float_refused(self):
        with pytest.raises(TypeError):
            to_money(0.1)

    def test_str_and_int_coerced(self):
        assert to_money("12.50") == Decimal("12.50")
        assert to_money(7) == Decimal("7")

    def test_decimal_passthrough(self):
        value = Decimal("3.14")
        assert to_money(value) is value


class TestRoundMoney:

    def test_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("34.5"), 0) == Decimal("35")

    def test_one_decimal(self):
        assert round_money(Decimal("3.25"), 1) == Decimal("3.3")


class TestCurrency:

    def test_normalised(self):
        assert validate_currency(" eur ") == "EUR"

    @pytest.mark.parametrize("code", ["", "EURO", "XYZ", None])
    def test_invalid_codes(self, code):
        with pytest.raises(InvalidCurrencyError):
            validate_currency(code)

    def test_is_valid_currency(self):
        assert is_valid_currency("USD")
        assert not is_valid_currency("ZZZ")
