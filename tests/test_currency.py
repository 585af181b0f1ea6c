"""Tests for the currency resolver."""

import pytest
from decimal import Decimal

from gemledger.ledger.currency import (
    ConversionRule,
    resolve_amount,
    to_reporting_currency,
)


class TestToReportingCurrency:
    """Tests for the resolution order."""

    def test_rate_applied(self):
        """Test conversion through the exchange rate."""
        assert to_reporting_currency(100, "USD", None, 300) == Decimal("30000")

    def test_explicit_amount_wins_over_rate(self):
        """Test that a stored converted amount beats the rate."""
        assert to_reporting_currency(100, "USD", 250, 300) == Decimal("250")

    def test_fallback_to_raw_amount(self):
        """Test that an unconvertible amount is taken as is."""
        assert to_reporting_currency(100, "USD", None, None) == Decimal("100")

    def test_same_currency_ignores_conversion_fields(self):
        """Test that reporting-currency amounts are never converted."""
        assert to_reporting_currency(100, "LKR", 5, 300) == Decimal("100")

    def test_same_currency_is_case_insensitive(self):
        """Test currency comparison ignores case and whitespace."""
        assert to_reporting_currency(100, " lkr ", 5, 300) == Decimal("100")

    def test_zero_rate_is_ignored(self):
        """Test that a zero or negative rate is not a rate."""
        assert to_reporting_currency(100, "USD", None, 0) == Decimal("100")
        assert to_reporting_currency(100, "USD", None, -2) == Decimal("100")

    def test_explicit_zero_is_trusted(self):
        """Test that an explicit converted amount of 0 is still explicit."""
        assert to_reporting_currency(100, "USD", 0, 300) == Decimal("0")

    def test_decimal_precision_kept(self):
        """Test that float-looking inputs do not pick up binary noise."""
        assert to_reporting_currency(Decimal("0.1"), "USD", None, 3) == Decimal("0.3")
        assert to_reporting_currency(0.1, "USD", None, 3) == Decimal("0.3")

    def test_other_reporting_currency(self):
        """Test a non-default reporting currency."""
        assert to_reporting_currency(100, "USD", None, None, reporting_currency="USD") == Decimal("100")
        assert to_reporting_currency(100, "LKR", None, 2, reporting_currency="USD") == Decimal("200")


class TestResolveAmount:
    """Tests for the rule reporting."""

    @pytest.mark.parametrize(
        "currency,explicit,rate,expected_rule",
        [
            ("LKR", None, None, ConversionRule.SAME_CURRENCY),
            ("USD", 250, 300, ConversionRule.EXPLICIT),
            ("USD", None, 300, ConversionRule.RATE),
            ("USD", None, None, ConversionRule.FALLBACK),
            (None, None, None, ConversionRule.FALLBACK),
        ],
    )
    def test_rule_reported(self, currency, explicit, rate, expected_rule):
        """Test that the deciding rule is reported."""
        _, rule = resolve_amount(100, currency, explicit, rate)
        assert rule == expected_rule

    def test_missing_currency_with_rate(self):
        """Test that a record without currency still uses its rate."""
        amount, rule = resolve_amount(10, None, None, 2)
        assert amount == Decimal("20")
        assert rule == ConversionRule.RATE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
