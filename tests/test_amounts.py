"""Tests for decimal <-> base-unit conversion."""

from decimal import Decimal

import pytest

from zephyra.amounts import (
    UINT256_MAX,
    format_amount,
    from_base_units,
    parse_positive,
    shorten_address,
    to_base_units,
)
from zephyra.errors import ErrorKind, InvalidAmount, PreconditionFailed


class TestToBaseUnits:
    """Tests for to_base_units."""

    def test_whole_and_fractional(self):
        assert to_base_units("1", 18) == 10**18
        assert to_base_units("1.5", 18) == 1_500_000_000_000_000_000
        assert to_base_units("0.00000001", 8) == 1

    def test_leading_and_trailing_dot(self):
        assert to_base_units(".5", 2) == 50
        assert to_base_units("2.", 2) == 200

    def test_zero_decimals(self):
        assert to_base_units("42", 0) == 42

    def test_excess_precision_rejected(self):
        """WBTC has 8 decimals: a 9th place cannot be represented."""
        with pytest.raises(InvalidAmount):
            to_base_units("0.000000001", 8)

    def test_trailing_zeros_beyond_decimals_allowed(self):
        assert to_base_units("1.50000000000", 8) == 150_000_000

    @pytest.mark.parametrize("text", ["-5", "abc", "", "1e5", "1,5", "0x10", " . "])
    def test_malformed_rejected(self, text):
        with pytest.raises(InvalidAmount):
            to_base_units(text, 18)

    def test_overflow_rejected(self):
        with pytest.raises(InvalidAmount):
            to_base_units(str(UINT256_MAX), 1)

    def test_invalid_amount_is_a_precondition_failure(self):
        with pytest.raises(PreconditionFailed) as exc_info:
            to_base_units("-1", 18)
        assert exc_info.value.kind == ErrorKind.INVALID_AMOUNT


class TestParsePositive:
    """Tests for parse_positive."""

    def test_zero_rejected(self):
        with pytest.raises(InvalidAmount):
            parse_positive("0", 18)
        with pytest.raises(InvalidAmount):
            parse_positive("0.000", 18)

    def test_positive_accepted(self):
        assert parse_positive("0.1", 6) == 100_000


class TestFromBaseUnits:
    """Tests for from_base_units and display formatting."""

    def test_round_trip_is_exact(self):
        for text, decimals in [("1.5", 18), ("0.12345678", 8), ("123456789.000001", 6)]:
            raw = to_base_units(text, decimals)
            assert from_base_units(raw, decimals) == Decimal(text)

    def test_large_value_keeps_precision(self):
        assert to_base_units(from_base_units(UINT256_MAX, 18), 18) == UINT256_MAX

    def test_format_truncates(self):
        assert format_amount(Decimal("1.99999"), 2) == "1.99"
        assert format_amount(Decimal("0"), 4) == "0.0000"

    def test_shorten_address(self):
        assert shorten_address("0x1234567890abcdef1234567890abcdef12345678") == "0x1234...5678"
        assert shorten_address("0x1234") == "0x1234"
