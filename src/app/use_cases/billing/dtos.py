"""Data Transfer Objects for Billing Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from src.app.services.balance_ledger import EntityKind
from src.domain.credit import Credit
from src.domain.invoice import Invoice
from src.domain.ledger_entry import LedgerActivity, LedgerEntry, LedgerStream
from src.domain.line_item import LineItem
from src.domain.payment import Payment, PaymentType


class InvoiceFieldsDTO(BaseModel):
    """Invoice header and line item fields shared by create commands"""

    line_items: List[LineItem] = Field(
        default_factory=list,
        description="Line items in display order"
    )

    discount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Header discount (percentage, or amount when is_amount_discount)"
    )

    is_amount_discount: bool = Field(default=False)

    uses_inclusive_taxes: Optional[bool] = Field(
        default=None,
        description="Tax mode; defaults to the inclusive_taxes setting"
    )

    tax_name1: str = ""
    tax_rate1: Decimal = Decimal("0")
    tax_name2: str = ""
    tax_rate2: Decimal = Decimal("0")

    custom_surcharge1: Decimal = Decimal("0")
    custom_surcharge2: Decimal = Decimal("0")
    custom_surcharge3: Decimal = Decimal("0")
    custom_surcharge4: Decimal = Decimal("0")
    custom_surcharge_tax1: bool = False
    custom_surcharge_tax2: bool = False
    custom_surcharge_tax3: bool = False
    custom_surcharge_tax4: bool = False

    partial: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Partial payment target (0 = none)"
    )

    due_date: Optional[date] = None

    auto_bill_enabled: Optional[bool] = Field(
        default=None,
        description="Defaults to the auto_bill setting (always/optout = enabled)"
    )


class CreateInvoiceCommandDTO(InvoiceFieldsDTO):
    """
    Command DTO for creating a draft invoice

    Used as input to CreateInvoice use case.
    """

    client_id: int = Field(..., description="Billed client")

    currency: Optional[str] = Field(
        default=None,
        description="ISO 4217 code; defaults to the currency setting"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "client_id": 7,
                "line_items": [
                    {"product_key": "consulting", "quantity": "2", "cost": "150.00",
                     "tax_name1": "MwSt.", "tax_rate1": "19"}
                ],
                "discount": "5",
                "is_amount_discount": True,
                "due_date": "2024-02-01"
            }
        }
    )


class UpdateInvoiceCommandDTO(BaseModel):
    """
    Command DTO for updating an invoice

    Only the fields that are set are changed; totals are recomputed and the
    balance difference goes through the ledger.
    """

    invoice_id: int
    line_items: Optional[List[LineItem]] = None
    discount: Optional[Decimal] = Field(default=None, ge=0)
    is_amount_discount: Optional[bool] = None
    uses_inclusive_taxes: Optional[bool] = None
    tax_name1: Optional[str] = None
    tax_rate1: Optional[Decimal] = None
    tax_name2: Optional[str] = None
    tax_rate2: Optional[Decimal] = None
    custom_surcharge1: Optional[Decimal] = None
    custom_surcharge2: Optional[Decimal] = None
    custom_surcharge3: Optional[Decimal] = None
    custom_surcharge4: Optional[Decimal] = None
    custom_surcharge_tax1: Optional[bool] = None
    custom_surcharge_tax2: Optional[bool] = None
    custom_surcharge_tax3: Optional[bool] = None
    custom_surcharge_tax4: Optional[bool] = None
    partial: Optional[Decimal] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    auto_bill_enabled: Optional[bool] = None

    def changes(self) -> dict:
        """Header fields set on the command (line items are handled separately)"""
        return self.model_dump(exclude_unset=True, exclude_none=True, exclude={"invoice_id", "line_items"})


class InvoiceResponseDTO(BaseModel):
    """
    Response DTO for invoice operations
    """

    invoice_id: int = Field(..., description="Invoice ID")
    client_id: int
    number: str
    status: str = Field(..., description="draft, sent, partial, paid or cancelled")
    currency: str
    amount: Decimal = Field(..., description="Invoice total")
    balance: Decimal = Field(..., description="Outstanding balance")
    partial: Decimal
    paid_to_date: Decimal
    line_items: List[LineItem] = Field(default_factory=list)
    due_date: Optional[date] = None
    auto_bill_enabled: bool
    auto_bill_tries: int
    updated_at: datetime

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceResponseDTO":
        return cls(
            invoice_id=invoice.id,
            client_id=invoice.client_id,
            number=invoice.number,
            status=invoice.status.value,
            currency=invoice.currency,
            amount=invoice.amount,
            balance=invoice.balance,
            partial=invoice.partial,
            paid_to_date=invoice.paid_to_date,
            line_items=invoice.get_line_items(),
            due_date=invoice.due_date,
            auto_bill_enabled=invoice.auto_bill_enabled,
            auto_bill_tries=invoice.auto_bill_tries,
            updated_at=invoice.updated_at,
        )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "invoice_id": 12,
                "client_id": 7,
                "number": "INV-000012",
                "status": "partial",
                "currency": "EUR",
                "amount": "100.000000",
                "balance": "60.000000",
                "partial": "0.000000",
                "paid_to_date": "40.000000",
                "line_items": [],
                "due_date": "2024-02-01",
                "auto_bill_enabled": True,
                "auto_bill_tries": 0,
                "updated_at": "2024-01-15T10:30:00Z"
            }
        }
    )


class LedgerEntryDTO(BaseModel):
    """Single ledger entry"""

    entry_id: int
    client_id: int
    stream: LedgerStream
    activity: LedgerActivity
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    adjustment: Decimal = Field(..., description="Signed delta")
    balance: Decimal = Field(..., description="Stream value after the adjustment")
    notes: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerEntryDTO":
        return cls(
            entry_id=entry.id,
            client_id=entry.client_id,
            stream=entry.stream,
            activity=entry.activity,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            adjustment=entry.adjustment,
            balance=entry.balance,
            notes=entry.notes,
            created_at=entry.created_at,
        )


class InvoiceLedgerResponseDTO(BaseModel):
    """Invoice state after a balance-changing operation, with the entries it wrote"""

    invoice: InvoiceResponseDTO
    ledger_entries: List[LedgerEntryDTO] = Field(default_factory=list)


class ApplyAdjustmentCommandDTO(BaseModel):
    """
    Command DTO for a manual balance adjustment

    Used as input to ApplyAdjustment use case.
    """

    entity_type: EntityKind = Field(
        ...,
        description="Adjusted entity (invoice or credit)"
    )

    entity_id: int = Field(..., description="ID of the adjusted entity")

    client_id: Optional[int] = Field(
        default=None,
        description="Owning client; the adjustment is rejected for another client's entity"
    )

    amount: Decimal = Field(
        ...,
        description="Signed delta (positive increases the balance)"
    )

    note: str = Field(
        default="Manual adjustment",
        description="Free text recorded on the ledger entry"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "entity_type": "invoice",
                "entity_id": 12,
                "amount": "-10.00",
                "note": "Goodwill discount"
            }
        }
    )


class RecordPaymentCommandDTO(BaseModel):
    """
    Command DTO for recording a payment against an invoice

    Amounts above the invoice balance are kept as unapplied overpayment.
    """

    invoice_id: int
    amount: Decimal = Field(..., gt=0, description="Amount received (must be > 0)")
    payment_type: PaymentType = Field(default=PaymentType.MANUAL)
    transaction_reference: Optional[str] = None


class RefundPaymentCommandDTO(BaseModel):
    payment_id: int
    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Amount to refund; defaults to everything not yet refunded"
    )


class PaymentResponseDTO(BaseModel):
    """Response DTO for payment operations"""

    payment_id: int
    client_id: int
    number: str
    amount: Decimal
    applied: Decimal = Field(..., description="Portion applied to invoice balances")
    refunded: Decimal
    status: str
    payment_type: str
    transaction_reference: Optional[str] = None
    ledger_entries: List[LedgerEntryDTO] = Field(default_factory=list)

    @classmethod
    def from_payment(cls, payment: Payment, entries: List[LedgerEntry]) -> "PaymentResponseDTO":
        return cls(
            payment_id=payment.id,
            client_id=payment.client_id,
            number=payment.number,
            amount=payment.amount,
            applied=payment.applied,
            refunded=payment.refunded,
            status=payment.status.value,
            payment_type=payment.type.value,
            transaction_reference=payment.transaction_reference,
            ledger_entries=[LedgerEntryDTO.from_entry(e) for e in entries],
        )


class ApplyLateFeeCommandDTO(BaseModel):
    """
    Command DTO for adding a late fee to an invoice

    Without amount and percent, the late_fee_amount1/late_fee_percent1
    settings apply. The percentage is taken of the partial target if set,
    else of the balance.
    """

    invoice_id: int
    amount: Optional[Decimal] = Field(default=None, ge=0)
    percent: Optional[Decimal] = Field(default=None, ge=0)


class CreateCreditCommandDTO(BaseModel):
    client_id: int
    amount: Decimal = Field(..., gt=0)
    invoice_id: Optional[int] = Field(
        default=None,
        description="Invoice whose paid amount the credit reverses"
    )


class CreditResponseDTO(BaseModel):
    credit_id: int
    client_id: int
    number: str
    status: str
    amount: Decimal
    balance: Decimal
    invoice_id: Optional[int] = None
    ledger_entries: List[LedgerEntryDTO] = Field(default_factory=list)

    @classmethod
    def from_credit(cls, credit: Credit, entries: List[LedgerEntry]) -> "CreditResponseDTO":
        return cls(
            credit_id=credit.id,
            client_id=credit.client_id,
            number=credit.number,
            status=credit.status.value,
            amount=credit.amount,
            balance=credit.balance,
            invoice_id=credit.invoice_id,
            ledger_entries=[LedgerEntryDTO.from_entry(e) for e in entries],
        )


class ClientBalanceResponseDTO(BaseModel):
    """
    Response DTO for client balance lookup

    Returned by GetClientBalance use case.
    """

    client_id: int = Field(..., description="Client ID")
    currency: str = Field(..., description="Client currency (settings cascade)")
    balance: Decimal = Field(..., description="Outstanding balance")
    paid_to_date: Decimal = Field(..., description="Lifetime payments, net of refunds")
    credit_balance: Decimal = Field(..., description="Unapplied credit")
    formatted_balance: str = Field(..., description="Balance formatted for display")
    formatted_credit_balance: str
    last_updated: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "client_id": 7,
                "currency": "EUR",
                "balance": "1234.560000",
                "paid_to_date": "400.000000",
                "credit_balance": "20.000000",
                "formatted_balance": "1.234,56 €",
                "formatted_credit_balance": "20,00 €",
                "last_updated": "2024-01-01T00:00:00Z"
            }
        }
    )


class LedgerEntryListResponseDTO(BaseModel):
    client_id: int
    entries: List[LedgerEntryDTO]
    total: int = Field(..., description="Total number of entries matching the filter")
    limit: int
    offset: int


class DiscrepancyKind(str, Enum):
    """Checks performed by ledger reconciliation"""
    PAID_TO_DATE_MISMATCH = "paid_to_date_mismatch"
    CLIENT_BALANCE_MISMATCH = "client_balance_mismatch"
    LEDGER_BALANCE_MISMATCH = "ledger_balance_mismatch"
    INVOICE_COMPANY_MISMATCH = "invoice_company_mismatch"
    MISSING_CONTACT = "missing_contact"
    MISSING_INVITATION = "missing_invitation"
    ORPHANED_OAUTH_ID = "orphaned_oauth_id"


class ReconcileCommandDTO(BaseModel):
    client_id: Optional[int] = Field(
        default=None,
        description="Reconcile one client only; all clients when omitted"
    )
    fix: bool = Field(
        default=False,
        description="Write corrective entries for the discrepancies found"
    )


class DiscrepancyDTO(BaseModel):
    """One failed reconciliation check"""

    client_id: int
    kind: DiscrepancyKind
    expected: Optional[Decimal] = None
    actual: Optional[Decimal] = None
    entity_id: Optional[int] = Field(
        default=None,
        description="Invoice the discrepancy belongs to, for invoice level checks"
    )
    corrected: bool = False
    message: str = ""


class ReconciliationResultDTO(BaseModel):
    """
    Response DTO for ledger reconciliation
    """

    clients_checked: int
    discrepancies_found: int
    corrected: int
    uncorrected: int
    fix_mode: bool
    summary: Dict[str, int] = Field(
        default_factory=dict,
        description="Number of discrepancies per kind"
    )
    discrepancies: List[DiscrepancyDTO] = Field(default_factory=list)
    reconciliation_time: datetime
    execution_time_ms: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "clients_checked": 10,
                "discrepancies_found": 1,
                "corrected": 0,
                "uncorrected": 1,
                "fix_mode": False,
                "summary": {"client_balance_mismatch": 1},
                "discrepancies": [
                    {
                        "client_id": 7,
                        "kind": "client_balance_mismatch",
                        "expected": "60.00",
                        "actual": "100.00",
                        "corrected": False,
                        "message": "Client balance 100.00 differs from open invoices 60.00"
                    }
                ],
                "reconciliation_time": "2024-01-01T00:00:00Z",
                "execution_time_ms": 35
            }
        }
    )


class AutoBillCommandDTO(BaseModel):
    invoice_id: int


class AutoBillOutcome(str, Enum):
    """How an auto-bill attempt ended"""
    ALREADY_PAID = "already_paid"
    SETTLED_BY_CREDITS = "settled_by_credits"
    CHARGED = "charged"
    CANCELLED = "cancelled"


class AutoBillResultDTO(BaseModel):
    """Response DTO for a successful auto-bill attempt"""

    invoice_id: int
    outcome: AutoBillOutcome
    credits_applied: Decimal = Decimal("0")
    charged_amount: Decimal = Decimal("0")
    gateway_fee: Decimal = Decimal("0")
    transaction_ref: Optional[str] = None
    payment_ids: List[int] = Field(default_factory=list)
    invoice: InvoiceResponseDTO


class AutoBillSweepResultDTO(BaseModel):
    """Totals of one auto-bill sweep"""

    invoices_found: int
    succeeded: int
    failed: int
    execution_time_ms: int
    failures: Dict[int, str] = Field(
        default_factory=dict,
        description="Error code per failed invoice ID"
    )
