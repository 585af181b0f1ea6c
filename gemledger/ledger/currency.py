"""
Currency Resolver

Every normalizer turns a source amount into the reporting currency
through this module and nothing else. Resolution order, first rule that
applies wins:

1. Source currency is the reporting currency -> amount unchanged
2. Source record carries its own converted amount -> trust it
3. Source record carries a positive exchange rate -> amount * rate
4. Otherwise -> amount unchanged (FALLBACK)

Rule 4 is a known accuracy gap: a foreign amount lands in the ledger
unconverted. It is kept so balances match what users have always seen,
but it is reported (ConversionRule.FALLBACK) so callers can flag it.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Union

Number = Union[int, float, Decimal]


class ConversionRule(str, Enum):
    SAME_CURRENCY = "same_currency"
    EXPLICIT = "explicit"
    RATE = "rate"
    FALLBACK = "fallback"


def _as_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _same_currency(currency: Optional[str], reporting_currency: str) -> bool:
    if currency is None:
        return False
    return currency.strip().upper() == reporting_currency.strip().upper()


def resolve_amount(
    amount: Number,
    currency: Optional[str],
    explicit_converted_amount: Optional[Number] = None,
    exchange_rate: Optional[Number] = None,
    reporting_currency: str = "LKR",
) -> tuple[Decimal, ConversionRule]:
    """Convert an amount and report which rule decided it."""
    if _same_currency(currency, reporting_currency):
        return _as_decimal(amount), ConversionRule.SAME_CURRENCY
    if explicit_converted_amount is not None:
        return _as_decimal(explicit_converted_amount), ConversionRule.EXPLICIT
    if exchange_rate is not None and exchange_rate > 0:
        return _as_decimal(amount) * _as_decimal(exchange_rate), ConversionRule.RATE
    return _as_decimal(amount), ConversionRule.FALLBACK


def to_reporting_currency(
    amount: Number,
    currency: Optional[str],
    explicit_converted_amount: Optional[Number] = None,
    exchange_rate: Optional[Number] = None,
    reporting_currency: str = "LKR",
) -> Decimal:
    """
    Amount expressed in the reporting currency.

    >>> to_reporting_currency(100, "USD", None, 300)
    Decimal('30000')
    >>> to_reporting_currency(100, "USD", 250, 300)
    Decimal('250')
    """
    converted, _ = resolve_amount(
        amount,
        currency,
        explicit_converted_amount,
        exchange_rate,
        reporting_currency,
    )
    return converted
