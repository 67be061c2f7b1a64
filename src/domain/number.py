"""Money and number helpers

Rounding, locale-aware formatting and parsing of monetary values. Every
monetary computation in the service goes through round_value so that the
rounding mode (half-up) is applied consistently.
"""

import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict

Numeric = Union[Decimal, int, float, str]

ZERO = Decimal("0")


class Currency(BaseModel):
    """Currency display settings"""

    model_config = ConfigDict(frozen=True)

    code: str
    symbol: str
    precision: int = 2
    thousand_separator: str = ","
    decimal_separator: str = "."
    swap_currency_symbol: bool = False


class Country(BaseModel):
    """Country level overrides for currency display (empty string = no override)"""

    model_config = ConfigDict(frozen=True)

    iso_3166_2: str
    thousand_separator: str = ""
    decimal_separator: str = ""
    swap_currency_symbol: Optional[bool] = None


CURRENCIES = {
    "USD": Currency(code="USD", symbol="$"),
    "EUR": Currency(code="EUR", symbol="€", thousand_separator=".", decimal_separator=",", swap_currency_symbol=True),
    "GBP": Currency(code="GBP", symbol="£"),
    "CHF": Currency(code="CHF", symbol="CHF", thousand_separator="'"),
    "JPY": Currency(code="JPY", symbol="¥", precision=0),
}


def get_currency(code: str) -> Currency:
    try:
        return CURRENCIES[code.upper()]
    except KeyError:
        raise ValueError(f"Unsupported currency {code}")


def to_decimal(value: Numeric) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() avoids binary float artefacts (0.1 -> 0.1000000000000000055...)
        return Decimal(str(value))
    return Decimal(value)


def round_value(value: Numeric, precision: int = 2) -> Decimal:
    """Round half-up to `precision` decimal places"""
    exponent = Decimal(1).scaleb(-precision)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def _group_thousands(digits: str, separator: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return separator.join(groups)


def format_value(value: Numeric, currency: Currency) -> str:
    """Format a number with the currency's separators and precision (no symbol)"""
    return _format_number(
        value, currency.precision, currency.decimal_separator, currency.thousand_separator
    )


def _format_number(value: Numeric, precision: int, decimal: str, thousand: str) -> str:
    rounded = round_value(value, precision)
    sign = "-" if rounded < 0 else ""
    integer_part, _, fraction = f"{abs(rounded):.{precision}f}".partition(".")
    formatted = _group_thousands(integer_part, thousand)
    if precision > 0:
        formatted = f"{formatted}{decimal}{fraction}"
    return f"{sign}{formatted}"


def format_money(
    value: Numeric,
    currency: Currency,
    country: Optional[Country] = None,
    show_code: bool = False,
) -> str:
    """
    Format a monetary value for display

    Country separators override the currency's. The negative sign is always
    placed ahead of the currency symbol.
    """
    thousand = currency.thousand_separator
    decimal = currency.decimal_separator
    swap_symbol = currency.swap_currency_symbol

    if country is not None:
        if country.thousand_separator:
            thousand = country.thousand_separator
        if country.decimal_separator:
            decimal = country.decimal_separator
        if country.swap_currency_symbol is not None:
            swap_symbol = country.swap_currency_symbol

    amount = to_decimal(value)
    number = _format_number(abs(amount), currency.precision, decimal, thousand)
    sign = "-" if round_value(amount, currency.precision) < 0 else ""

    if show_code:
        return f"{sign}{number} {currency.code}"
    if swap_symbol:
        return f"{sign}{number} {currency.symbol.strip()}"
    return f"{sign}{currency.symbol}{number}"


def parse_value(text: str) -> Decimal:
    """
    Parse a user supplied amount into a Decimal

    Accepts both "1,234.56" and "1.234,56" notations and ignores currency
    symbols. A separator followed by exactly one or two digits at the end
    is treated as the decimal separator.
    """
    cleaned = re.sub(r"[^0-9,.\-]", "", text or "")
    if not cleaned:
        return ZERO

    negative = cleaned.startswith("-")
    cleaned = cleaned.replace("-", "")

    match = re.search(r"[,.](\d{1,2})$", cleaned)
    if match:
        whole = re.sub(r"[,.]", "", cleaned[: match.start()])
        cleaned = f"{whole or '0'}.{match.group(1)}"
    else:
        cleaned = re.sub(r"[,.]", "", cleaned)

    try:
        result = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Cannot parse amount from {text!r}")

    return -result if negative else result
