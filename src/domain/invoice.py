"""Invoice Domain Entity

Tracks invoice line items, computed totals and payment state.
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, ForeignKey, Numeric, String, Date
from src.domain.base import BaseModel, IdType
from src.domain.invoice_calculator import CalculationResult, InvoiceSnapshot, compute
from src.domain.line_item import LineItem, LineItemType


class InvoiceStatus(str, Enum):
    """Invoice status types"""
    DRAFT = "draft"
    SENT = "sent"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


PAYABLE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PARTIAL)
BALANCE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PARTIAL)


class Invoice(BaseModel, table=True):
    """
    Invoice - Bill issued to a client

    Domain Rules:
    - amount, balance are recomputed by the invoice calculator whenever
      line items, discount, taxes or surcharges change
    - partial is an optional partial payment target (0 = none)
    - amount - balance == paid_to_date once the invoice is not a draft
    - only sent/partial invoices contribute to the client balance
    - balance changes only through the balance ledger
    - auto_bill_tries counts consecutive failed gateway charges
    """

    __tablename__ = "invoices"
    __table_args__ = (
        Index('ix_invoices_client_id', 'client_id'),
        Index('ix_invoices_status', 'status'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique invoice identifier (auto-increment)"
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        description="Issuing company"
    )

    client_id: int = Field(
        sa_column=Column(IdType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        description="Billed client"
    )

    number: str = Field(
        sa_column=Column(String(50), nullable=False),
        description="Invoice number (e.g., INV-000001)"
    )

    status: InvoiceStatus = Field(
        default=InvoiceStatus.DRAFT,
        description="Invoice status (draft, sent, partial, paid, cancelled)"
    )

    line_items: List[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Serialized line items"
    )

    discount: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Header discount (percentage or amount, see is_amount_discount)"
    )

    is_amount_discount: bool = Field(default=False)

    uses_inclusive_taxes: bool = Field(default=False)

    tax_name1: str = Field(default="", sa_column=Column(String(64), nullable=False, default=""))
    tax_rate1: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 6), nullable=False, default=0))
    tax_name2: str = Field(default="", sa_column=Column(String(64), nullable=False, default=""))
    tax_rate2: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 6), nullable=False, default=0))

    custom_surcharge1: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 6), nullable=False, default=0))
    custom_surcharge2: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 6), nullable=False, default=0))
    custom_surcharge3: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 6), nullable=False, default=0))
    custom_surcharge4: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 6), nullable=False, default=0))
    custom_surcharge_tax1: bool = Field(default=False)
    custom_surcharge_tax2: bool = Field(default=False)
    custom_surcharge_tax3: bool = Field(default=False)
    custom_surcharge_tax4: bool = Field(default=False)

    amount: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Invoice total"
    )

    balance: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Outstanding balance"
    )

    partial: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Partial payment target (0 = none)"
    )

    paid_to_date: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Amount paid so far"
    )

    currency: str = Field(
        default="EUR",
        sa_column=Column(String(3), nullable=False),
        description="Currency code (ISO 4217)"
    )

    due_date: Optional[date] = Field(
        default=None,
        sa_column=Column(Date, nullable=True),
        description="Payment due date"
    )

    auto_bill_enabled: bool = Field(default=False)

    auto_bill_tries: int = Field(default=0)

    is_deleted: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Invoice creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )

    def get_line_items(self) -> List[LineItem]:
        return [LineItem.model_validate(item) for item in (self.line_items or [])]

    def set_line_items(self, items: List[LineItem]) -> None:
        self.line_items = [item.to_json() for item in items]

    def snapshot(self) -> InvoiceSnapshot:
        return InvoiceSnapshot(
            line_items=tuple(self.get_line_items()),
            discount=self.discount,
            is_amount_discount=self.is_amount_discount,
            uses_inclusive_taxes=self.uses_inclusive_taxes,
            tax_name1=self.tax_name1 or "",
            tax_rate1=self.tax_rate1,
            tax_name2=self.tax_name2 or "",
            tax_rate2=self.tax_rate2,
            custom_surcharges=(
                self.custom_surcharge1,
                self.custom_surcharge2,
                self.custom_surcharge3,
                self.custom_surcharge4,
            ),
            custom_surcharge_taxes=(
                self.custom_surcharge_tax1,
                self.custom_surcharge_tax2,
                self.custom_surcharge_tax3,
                self.custom_surcharge_tax4,
            ),
            paid_to_date=self.paid_to_date,
        )

    def apply_calculation(self, result: CalculationResult) -> None:
        """Store computed totals (balance is left to the balance ledger)"""
        self.amount = result.total
        self.updated_at = datetime.utcnow()

    def recalculate(self) -> Decimal:
        """Recompute totals; returns the change of amount"""
        result = compute(self.snapshot())
        delta = result.total - self.amount
        self.apply_calculation(result)
        return delta

    def add_line_item(self, item: LineItem) -> None:
        self.set_line_items(self.get_line_items() + [item])

    def remove_last_line_item(self, type_id: LineItemType) -> Optional[LineItem]:
        """Drop the most recently added line item of the given type"""
        items = self.get_line_items()
        for index in range(len(items) - 1, -1, -1):
            if items[index].type_id == type_id:
                removed = items.pop(index)
                self.set_line_items(items)
                return removed
        return None

    def payable_amount(self) -> Decimal:
        """Amount a collection attempt targets: the partial if set, else the balance"""
        if self.partial and self.partial > 0:
            return self.partial
        return self.balance

    def is_payable(self) -> bool:
        return (
            not self.is_deleted
            and self.status in PAYABLE_STATUSES
            and self.balance > 0
        )

    def calculated_status(self) -> InvoiceStatus:
        if self.status in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED):
            return self.status
        if self.balance == 0 and self.amount != 0:
            return InvoiceStatus.PAID
        if self.balance == 0 and self.paid_to_date != 0:
            return InvoiceStatus.PAID
        if self.balance != self.amount:
            return InvoiceStatus.PARTIAL
        return InvoiceStatus.SENT

    def set_calculated_status(self) -> None:
        self.status = self.calculated_status()

