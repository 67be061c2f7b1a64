"""Invoice Calculator

Pure computation of invoice totals from line items and header fields.
No I/O and no mutation: compute() takes a snapshot and returns a new
CalculationResult. Invalid input is rejected when the snapshot is built.

Rounding:
- line gross (quantity * cost) keeps 4 decimal places
- every individual tax amount rounds half-up to 2 places
- subtotal, discount, total and balance round half-up to 2 places
"""

from decimal import Decimal
from typing import List, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.domain.line_item import LineItem
from src.domain.number import round_value

ZERO = Decimal("0")
HUNDRED = Decimal("100")
LINE_PRECISION = 4


class InvoiceSnapshot(BaseModel):
    """Immutable input of one calculation pass"""

    model_config = ConfigDict(frozen=True)

    line_items: Tuple[LineItem, ...] = ()
    discount: Decimal = ZERO
    is_amount_discount: bool = False
    uses_inclusive_taxes: bool = False
    tax_name1: str = ""
    tax_rate1: Decimal = ZERO
    tax_name2: str = ""
    tax_rate2: Decimal = ZERO
    custom_surcharges: Tuple[Decimal, Decimal, Decimal, Decimal] = (ZERO, ZERO, ZERO, ZERO)
    custom_surcharge_taxes: Tuple[bool, bool, bool, bool] = (False, False, False, False)
    paid_to_date: Decimal = ZERO
    precision: int = 2

    @field_validator("discount", "tax_rate1", "tax_rate2", "paid_to_date")
    @classmethod
    def must_be_finite(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("value must be a finite number")
        return value

    @field_validator("discount")
    @classmethod
    def discount_not_negative(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("discount must not be negative")
        return value

    def header_taxes(self) -> List[Tuple[str, Decimal]]:
        return [
            (name or "", rate)
            for name, rate in ((self.tax_name1, self.tax_rate1), (self.tax_name2, self.tax_rate2))
            if rate != 0
        ]


class TaxMapEntry(BaseModel):
    """Aggregated tax for one distinct (name, rate) pair"""

    name: str
    rate: Decimal
    taxable_base: Decimal = ZERO
    total: Decimal = ZERO


class LineTotal(BaseModel):
    line_total: Decimal
    tax_amount: Decimal
    gross_line_total: Decimal


class CalculationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    discount: Decimal
    surcharges: Decimal
    total_taxes: Decimal
    total: Decimal
    balance: Decimal
    tax_map: List[TaxMapEntry] = Field(default_factory=list)
    line_totals: List[LineTotal] = Field(default_factory=list)


class _TaxMap:
    """Insertion ordered accumulator keyed by (name, rate)"""

    def __init__(self):
        self._entries: dict[tuple[str, Decimal], TaxMapEntry] = {}

    def add(self, name: str, rate: Decimal, base: Decimal, amount: Decimal) -> None:
        key = (name, rate.normalize())
        entry = self._entries.get(key)
        if entry is None:
            entry = TaxMapEntry(name=name, rate=rate)
            self._entries[key] = entry
        entry.taxable_base += base
        entry.total += amount

    def entries(self, precision: int) -> List[TaxMapEntry]:
        return [
            TaxMapEntry(
                name=e.name,
                rate=e.rate,
                taxable_base=round_value(e.taxable_base, precision),
                total=round_value(e.total, precision),
            )
            for e in self._entries.values()
        ]

    def total(self) -> Decimal:
        return sum((e.total for e in self._entries.values()), ZERO)


def tax_amount(base: Decimal, rate: Decimal, inclusive: bool, precision: int = 2) -> Decimal:
    """Tax on `base`; backed out of it when taxes are inclusive"""
    if inclusive:
        return round_value(base - base / (1 + rate / HUNDRED), precision)
    return round_value(base * rate / HUNDRED, precision)


def _line_gross(item: LineItem, is_amount_discount: bool) -> Decimal:
    gross = round_value(item.quantity * item.cost, LINE_PRECISION)
    if item.discount:
        if is_amount_discount:
            gross -= item.discount
        else:
            gross -= round_value(gross * item.discount / HUNDRED, LINE_PRECISION)
    return gross


def compute(snapshot: InvoiceSnapshot) -> CalculationResult:
    """Compute subtotal, taxes, total and balance of an invoice snapshot"""
    precision = snapshot.precision
    inclusive = snapshot.uses_inclusive_taxes
    tax_map = _TaxMap()

    gross_lines = [_line_gross(item, snapshot.is_amount_discount) for item in snapshot.line_items]
    subtotal = sum(gross_lines, ZERO)

    if snapshot.is_amount_discount:
        discount = round_value(snapshot.discount, precision)
    else:
        discount = round_value(subtotal * snapshot.discount / HUNDRED, precision)

    line_totals: List[LineTotal] = []
    for item, gross in zip(snapshot.line_items, gross_lines):
        taxable = gross
        if discount and subtotal:
            # each line carries its pro rata share of the header discount
            taxable = gross - gross / subtotal * discount

        line_tax = ZERO
        for name, rate in item.taxes():
            amount = tax_amount(taxable, rate, inclusive, precision)
            tax_map.add(name, rate, taxable, amount)
            line_tax += amount

        line_totals.append(
            LineTotal(
                line_total=round_value(gross, precision),
                tax_amount=line_tax,
                gross_line_total=round_value(gross if inclusive else gross + line_tax, precision),
            )
        )

    surcharges = sum(snapshot.custom_surcharges, ZERO)
    taxable_surcharges = sum(
        (s for s, taxable in zip(snapshot.custom_surcharges, snapshot.custom_surcharge_taxes) if taxable),
        ZERO,
    )

    header_base = subtotal - discount + taxable_surcharges
    for name, rate in snapshot.header_taxes():
        tax_map.add(name, rate, header_base, tax_amount(header_base, rate, inclusive, precision))

    total_taxes = round_value(tax_map.total(), precision)

    if inclusive:
        total = round_value(subtotal - discount + surcharges, precision)
    else:
        total = round_value(subtotal - discount + surcharges + total_taxes, precision)

    return CalculationResult(
        subtotal=round_value(subtotal, precision),
        discount=discount,
        surcharges=round_value(surcharges, precision),
        total_taxes=total_taxes,
        total=total,
        balance=round_value(total - snapshot.paid_to_date, precision),
        tax_map=tax_map.entries(precision),
        line_totals=line_totals,
    )
