"""Unit tests for the invoice calculator"""

import pytest
from decimal import Decimal
from pydantic import ValidationError
from src.domain.invoice_calculator import InvoiceSnapshot, compute, tax_amount
from src.domain.line_item import LineItem


def _item(cost, quantity="1", **kwargs) -> LineItem:
    return LineItem(quantity=Decimal(quantity), cost=Decimal(cost), **kwargs)


class TestExclusiveTaxes:
    """Taxes added on top of the line totals"""

    def test_line_tax_rounds_total_to_100(self):
        """
        Given: One line of 82.6446 with 21% tax, exclusive
        When: The invoice is computed
        Then: The total rounds to 100.00
        """
        # Arrange
        snapshot = InvoiceSnapshot(
            line_items=(_item("82.6446", tax_name1="VAT", tax_rate1=Decimal("21")),)
        )

        # Act
        result = compute(snapshot)

        # Assert
        assert result.total == Decimal("100.00")
        assert result.total_taxes == Decimal("17.36")
        assert result.subtotal == Decimal("82.64")

    def test_amount_discount_surcharge_and_header_tax(self):
        """
        Given: Two lines of 10, amount discount 5, surcharge 5, header tax 10%
        When: The invoice is computed
        Then: Subtotal is 20 and total is 21.5
        """
        # Arrange
        snapshot = InvoiceSnapshot(
            line_items=(_item("10"), _item("10")),
            discount=Decimal("5"),
            is_amount_discount=True,
            tax_name1="GST",
            tax_rate1=Decimal("10"),
            custom_surcharges=(Decimal("5"), Decimal("0"), Decimal("0"), Decimal("0")),
        )

        # Act
        result = compute(snapshot)

        # Assert
        assert result.subtotal == Decimal("20.00")
        assert result.discount == Decimal("5.00")
        assert result.surcharges == Decimal("5.00")
        assert result.total_taxes == Decimal("1.50")
        assert result.total == Decimal("21.50")

    def test_two_header_taxes(self):
        """Same as above with a second 10% header tax: total 23"""
        # Arrange
        snapshot = InvoiceSnapshot(
            line_items=(_item("10"), _item("10")),
            discount=Decimal("5"),
            is_amount_discount=True,
            tax_name1="GST",
            tax_rate1=Decimal("10"),
            tax_name2="PST",
            tax_rate2=Decimal("10"),
            custom_surcharges=(Decimal("5"), Decimal("0"), Decimal("0"), Decimal("0")),
        )

        # Act
        result = compute(snapshot)

        # Assert
        assert result.total == Decimal("23.00")
        assert [(e.name, e.total) for e in result.tax_map] == [
            ("GST", Decimal("1.50")),
            ("PST", Decimal("1.50")),
        ]

    def test_percentage_discount_reduces_line_taxable_base(self):
        """
        Given: One line of 100 taxed 10% and a 10% header discount
        When: The invoice is computed
        Then: Tax is taken of 90 and total is 99
        """
        # Arrange
        snapshot = InvoiceSnapshot(
            line_items=(_item("100", tax_name1="VAT", tax_rate1=Decimal("10")),),
            discount=Decimal("10"),
        )

        # Act
        result = compute(snapshot)

        # Assert
        assert result.discount == Decimal("10.00")
        assert result.total_taxes == Decimal("9.00")
        assert result.total == Decimal("99.00")
        assert result.tax_map[0].taxable_base == Decimal("90.00")

    def test_taxable_surcharge_joins_header_tax_base(self):
        # Arrange
        taxed = InvoiceSnapshot(
            line_items=(_item("100"),),
            tax_name1="VAT",
            tax_rate1=Decimal("10"),
            custom_surcharges=(Decimal("10"), Decimal("0"), Decimal("0"), Decimal("0")),
            custom_surcharge_taxes=(True, False, False, False),
        )
        untaxed = taxed.model_copy(update={"custom_surcharge_taxes": (False, False, False, False)})

        # Act & Assert
        assert compute(taxed).total == Decimal("121.00")
        assert compute(untaxed).total == Decimal("120.00")

    def test_each_tax_amount_rounds_before_summing(self):
        """Three lines each taxed 0.005 give 0.03, not round(0.015)"""
        # Arrange
        line = _item("0.05", tax_name1="VAT", tax_rate1=Decimal("10"))
        snapshot = InvoiceSnapshot(line_items=(line, line, line))

        # Act
        result = compute(snapshot)

        # Assert
        assert result.total_taxes == Decimal("0.03")
        assert result.total == Decimal("0.18")

    def test_line_discount_as_amount(self):
        # Arrange
        snapshot = InvoiceSnapshot(
            line_items=(_item("50", quantity="2", discount=Decimal("10")),),
            is_amount_discount=True,
        )

        # Act
        result = compute(snapshot)

        # Assert
        assert result.subtotal == Decimal("90.00")
        assert result.line_totals[0].line_total == Decimal("90.00")


class TestInclusiveTaxes:
    """Taxes embedded in the line totals"""

    def test_two_lines_19_percent_inclusive(self):
        """
        Given: Two lines of 50 with 19% tax, inclusive
        When: The invoice is computed
        Then: Total taxes are 15.96 and the total stays 100
        """
        # Arrange
        snapshot = InvoiceSnapshot(
            line_items=(
                _item("50", tax_name1="MwSt.", tax_rate1=Decimal("19")),
                _item("50", tax_name1="MwSt.", tax_rate1=Decimal("19")),
            ),
            uses_inclusive_taxes=True,
        )

        # Act
        result = compute(snapshot)

        # Assert
        assert result.total_taxes == Decimal("15.96")
        assert result.total == Decimal("100.00")
        assert result.subtotal == Decimal("100.00")
        assert len(result.tax_map) == 1
        assert result.tax_map[0].taxable_base == Decimal("100.00")

    def test_tax_amount_backs_tax_out_of_gross(self):
        assert tax_amount(Decimal("119"), Decimal("19"), inclusive=True) == Decimal("19.00")
        assert tax_amount(Decimal("100"), Decimal("19"), inclusive=False) == Decimal("19.00")


class TestBalance:
    def test_balance_is_total_minus_paid_to_date(self):
        # Arrange
        snapshot = InvoiceSnapshot(line_items=(_item("100"),), paid_to_date=Decimal("40"))

        # Act
        result = compute(snapshot)

        # Assert
        assert result.total == Decimal("100.00")
        assert result.balance == Decimal("60.00")

    def test_empty_invoice_is_zero(self):
        result = compute(InvoiceSnapshot())

        assert result.total == Decimal("0.00")
        assert result.tax_map == []


class TestInvalidInput:
    """Malformed input is rejected before any calculation"""

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            LineItem(quantity=Decimal("-1"), cost=Decimal("10"))

    def test_non_finite_cost_rejected(self):
        with pytest.raises(ValidationError):
            LineItem(quantity=Decimal("1"), cost=Decimal("NaN"))

    def test_negative_discount_rejected(self):
        with pytest.raises(ValidationError):
            InvoiceSnapshot(discount=Decimal("-1"))

    def test_negative_cost_allowed_for_credits(self):
        item = LineItem(quantity=Decimal("1"), cost=Decimal("-10"))

        result = compute(InvoiceSnapshot(line_items=(item,)))

        assert result.total == Decimal("-10.00")
