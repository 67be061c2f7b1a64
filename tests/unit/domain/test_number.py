"""Unit tests for money and number helpers"""

import pytest
from decimal import Decimal
from src.domain.number import (
    Country,
    format_money,
    format_value,
    get_currency,
    parse_value,
    round_value,
)


class TestRoundValue:
    """Half-up rounding"""

    def test_rounds_half_up(self):
        assert round_value(Decimal("2.675")) == Decimal("2.68")
        assert round_value(Decimal("2.674")) == Decimal("2.67")

    def test_float_input_does_not_carry_binary_error(self):
        """1.005 as a float is slightly below 1.005; it must still round up"""
        assert round_value(1.005) == Decimal("1.01")

    def test_negative_half_rounds_away_from_zero(self):
        assert round_value(Decimal("-2.5"), 0) == Decimal("-3")

    def test_precision_four(self):
        assert round_value(Decimal("82.64455"), 4) == Decimal("82.6446")


class TestFormatting:
    """Locale aware display of amounts"""

    def test_format_value_uses_currency_separators(self):
        assert format_value(Decimal("1234567.891"), get_currency("USD")) == "1,234,567.89"
        assert format_value(Decimal("1234567.891"), get_currency("EUR")) == "1.234.567,89"

    def test_format_money_swapped_symbol(self):
        assert format_money(Decimal("1234.56"), get_currency("EUR")) == "1.234,56 €"

    def test_format_money_negative_sign_ahead_of_symbol(self):
        assert format_money(Decimal("-1234.5"), get_currency("USD")) == "-$1,234.50"

    def test_format_money_zero_precision_currency(self):
        assert format_money(Decimal("1234.5"), get_currency("JPY")) == "¥1,235"

    def test_format_money_with_code(self):
        assert format_money(10, get_currency("usd"), show_code=True) == "10.00 USD"

    def test_country_separators_override_currency(self):
        """
        Given: A EUR amount for a Swiss client
        When: The country overrides both separators
        Then: The country's separators are used, the symbol stays swapped
        """
        # Arrange
        country = Country(iso_3166_2="CH", thousand_separator="'", decimal_separator=".")

        # Act
        formatted = format_money(Decimal("1234.56"), get_currency("EUR"), country)

        # Assert
        assert formatted == "1'234.56 €"

    def test_unknown_currency_raises(self):
        with pytest.raises(ValueError):
            get_currency("XYZ")


class TestParseValue:
    """Parsing user supplied amounts"""

    def test_parses_european_notation(self):
        assert parse_value("1.234,56") == Decimal("1234.56")

    def test_parses_symbol_and_us_notation(self):
        assert parse_value("$1,234.56") == Decimal("1234.56")

    def test_parses_negative_single_decimal(self):
        assert parse_value("-12,5") == Decimal("-12.5")

    def test_three_trailing_digits_are_thousands(self):
        assert parse_value("1,234") == Decimal("1234")

    def test_empty_text_is_zero(self):
        assert parse_value("") == Decimal("0")
        assert parse_value("abc") == Decimal("0")

    def test_lone_sign_raises(self):
        with pytest.raises(ValueError):
            parse_value("-")
