"""
Unit tests for fixed-point amount helpers.

Tests cover:
- Minimum output math at the slippage bounds
- parse_units / format_units exactness
- Percentage parsing and resolution
- Slippage and gas limit validation
"""

from decimal import Decimal
from fractions import Fraction

import pytest

from trading.exceptions import InputError, InvalidMinimumAmountError
from trading.units import (
    calculate_minimum_out,
    format_units,
    is_raw_amount,
    parse_percentage,
    parse_positive_units,
    parse_raw_amount,
    parse_units,
    percentage_of,
    slippage_pct_to_bps,
    validate_gas_limit,
    validate_slippage_bps,
)


class TestMinimumOut:
    """Test integer minimum-output calculation."""

    @pytest.mark.parametrize("amount_out", [10 ** 18, 987654321987654321, 10 ** 30 + 7])
    @pytest.mark.parametrize("slippage_bps", [0, 1, 50, 1000, 5000, 9999])
    def test_matches_floor_formula(self, amount_out, slippage_bps):
        expected = amount_out * (10000 - slippage_bps) // 10000
        assert calculate_minimum_out(amount_out, slippage_bps) == expected

    def test_zero_slippage_keeps_full_quote(self):
        assert calculate_minimum_out(123456789, 0) == 123456789

    @pytest.mark.parametrize("slippage_bps", [1, 100, 9999])
    def test_positive_slippage_is_strictly_lower(self, slippage_bps):
        amount_out = 10 ** 18
        assert calculate_minimum_out(amount_out, slippage_bps) < amount_out

    def test_ten_percent_of_one_token(self):
        assert calculate_minimum_out(10 ** 18, 1000) == 900000000000000000

    def test_rounding_to_zero_is_rejected(self):
        with pytest.raises(InvalidMinimumAmountError):
            calculate_minimum_out(1, 1)

    def test_zero_quote_is_rejected(self):
        with pytest.raises(InvalidMinimumAmountError):
            calculate_minimum_out(0, 0)

    @pytest.mark.parametrize("slippage_bps", [-1, 10000, 20000, 1.5, "100", True])
    def test_invalid_slippage(self, slippage_bps):
        with pytest.raises(InputError):
            calculate_minimum_out(10 ** 18, slippage_bps)


class TestParseFormatUnits:
    """Test decimal string <-> base unit conversion."""

    @pytest.mark.parametrize("value, decimals, expected", [
        ("0.1", 18, 10 ** 17),
        ("1", 18, 10 ** 18),
        ("1.", 18, 10 ** 18),
        (".5", 6, 500000),
        ("1.500000", 6, 1500000),
        ("0", 18, 0),
        (Decimal("2.25"), 8, 225000000),
        (3, 6, 3000000),
    ])
    def test_parse_units(self, value, decimals, expected):
        assert parse_units(value, decimals) == expected

    @pytest.mark.parametrize("value", ["abc", "-1", "1e18", "", "1.2.3", " ", "0x10"])
    def test_parse_units_rejects_malformed(self, value):
        with pytest.raises(InputError):
            parse_units(value, 18)

    def test_parse_units_rejects_excess_precision(self):
        with pytest.raises(InputError):
            parse_units("0.0000001", 6)

    def test_parse_positive_units_rejects_zero(self):
        with pytest.raises(InputError):
            parse_positive_units("0.0", 18)

    @pytest.mark.parametrize("value, decimals, expected", [
        (10 ** 16, 18, "0.01"),
        (10 ** 18, 18, "1"),
        (1500000, 6, "1.5"),
        (1, 8, "0.00000001"),
        (0, 18, "0"),
        (42, 0, "42"),
    ])
    def test_format_units(self, value, decimals, expected):
        assert format_units(value, decimals) == expected

    @pytest.mark.parametrize("decimals", [6, 8, 18])
    @pytest.mark.parametrize("raw", [0, 1, 7, 10 ** 6, 123456789, 10 ** 18 + 1, 2 ** 255 - 19])
    def test_format_then_parse_is_exact(self, raw, decimals):
        assert parse_units(format_units(raw, decimals), decimals) == raw


class TestPercentages:
    """Test percentage-of-balance parsing."""

    def test_parse_percentage(self):
        assert parse_percentage("50%") == 50
        assert parse_percentage(" 12.5% ") == Fraction(25, 2)
        assert parse_percentage("100%") == 100

    @pytest.mark.parametrize("value", ["0%", "-5%", "150%", "abc%", "%", "50"])
    def test_parse_percentage_rejects_invalid(self, value):
        with pytest.raises(InputError):
            parse_percentage(value)

    def test_half_of_balance_is_exact(self):
        balance = 200 * 10 ** 18
        assert percentage_of(balance, parse_percentage("50%")) == 100 * 10 ** 18

    def test_percentage_floors(self):
        assert percentage_of(3, parse_percentage("50%")) == 1
        assert percentage_of(10 ** 18, parse_percentage("33.3%")) == 333000000000000000


class TestRawAmounts:

    def test_is_raw_amount(self):
        assert is_raw_amount("1500000")
        assert is_raw_amount("0x10")
        assert not is_raw_amount("1.5")
        assert not is_raw_amount("50%")

    def test_parse_raw_amount(self):
        assert parse_raw_amount("1500000") == 1500000
        assert parse_raw_amount("0x10") == 16


class TestSettingsValidation:
    """Test slippage and gas limit settings."""

    @pytest.mark.parametrize("pct, bps", [("10", 1000), ("0.5", 50), (1, 100), ("0", 0)])
    def test_slippage_pct_to_bps(self, pct, bps):
        assert slippage_pct_to_bps(pct) == bps

    @pytest.mark.parametrize("pct", ["100", "abc", "-1"])
    def test_slippage_pct_to_bps_rejects_invalid(self, pct):
        with pytest.raises(InputError):
            slippage_pct_to_bps(pct)

    def test_validate_slippage_bps(self):
        assert validate_slippage_bps(0) == 0
        assert validate_slippage_bps(9999) == 9999

    @pytest.mark.parametrize("gas_limit", [21000, 500000, 1000000])
    def test_validate_gas_limit(self, gas_limit):
        assert validate_gas_limit(gas_limit) == gas_limit

    @pytest.mark.parametrize("gas_limit", [20999, 1000001, 0, "500000", 5e5])
    def test_validate_gas_limit_rejects_invalid(self, gas_limit):
        with pytest.raises(InputError):
            validate_gas_limit(gas_limit)
