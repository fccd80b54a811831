# Overview: Static exchange-rate table and display-time currency conversion.

"""
Currency helpers.

Every monetary value is stored in its transaction currency alongside a
currency tag. Conversion happens only when values are displayed or summed
across currencies, using a fixed table of multipliers relative to USD:

    converted = (amount / EXCHANGE_RATES[from]) * EXCHANGE_RATES[to]

There is no live rate lookup. Conversion is plain float arithmetic;
convert_decimal() quantizes to cents for values that get persisted.
"""

from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP

DEFAULT_CURRENCY = "USD"

EXCHANGE_RATES = {
    "USD": 1.0,
    "AED": 3.67,
    "EUR": 0.92,
}

CURRENCIES = tuple(EXCHANGE_RATES)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "AED": "AED ",
    "EUR": "€",
}

CENTS = Decimal("0.01")


def _to_float(amount) -> float:
    """Coerce user/DB input to float; anything non-numeric counts as 0."""
    if amount is None or isinstance(amount, bool):
        return 0.0
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def _rate(currency: str) -> float:
    try:
        return EXCHANGE_RATES[currency]
    except KeyError:
        raise ValueError(f"Unsupported currency: {currency}") from None


def convert(amount, from_currency: str, to_currency: str) -> float:
    """Convert an amount between currencies using the static rate table."""
    value = _to_float(amount)
    return (value / _rate(from_currency)) * _rate(to_currency)


def convert_decimal(amount, from_currency: str, to_currency: str) -> Decimal:
    """convert() quantized to cents, for values written back to the database."""
    if from_currency == to_currency:
        return Decimal(str(_to_float(amount))).quantize(CENTS, rounding=ROUND_HALF_UP)
    converted = convert(amount, from_currency, to_currency)
    return Decimal(str(converted)).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_money_str(value) -> str | None:
    """Serialize a Numeric column value as a fixed two-decimal string."""
    if value is None:
        return None
    return str(Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))


def format_amount(amount, currency: str = DEFAULT_CURRENCY) -> str:
    value = _to_float(amount)
    return f"{CURRENCY_SYMBOLS.get(currency, currency + ' ')}{value:,.2f}"


def is_supported(currency: str | None) -> bool:
    return currency in EXCHANGE_RATES


def settings_payload() -> dict:
    return {
        "defaultCurrency": DEFAULT_CURRENCY,
        "exchangeRates": dict(EXCHANGE_RATES),
        "currencies": list(CURRENCIES),
    }
