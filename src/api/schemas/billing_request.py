"""Request schemas for Billing API

Pydantic models for validating incoming HTTP requests.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.app.services.balance_ledger import EntityKind
from src.app.use_cases.billing.dtos import InvoiceFieldsDTO
from src.domain.invoice_calculator import InvoiceSnapshot
from src.domain.line_item import LineItem
from src.domain.payment import PaymentType


class CalculateInvoiceRequestSchema(InvoiceFieldsDTO):
    """
    Request schema for a calculation preview

    Used for POST /billing/invoices/calculate endpoint. Nothing is persisted.
    """

    paid_to_date: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Amount already paid, subtracted from the total to give the balance"
    )

    def to_snapshot(self) -> InvoiceSnapshot:
        return InvoiceSnapshot(
            line_items=tuple(self.line_items),
            discount=self.discount,
            is_amount_discount=self.is_amount_discount,
            uses_inclusive_taxes=bool(self.uses_inclusive_taxes),
            tax_name1=self.tax_name1,
            tax_rate1=self.tax_rate1,
            tax_name2=self.tax_name2,
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

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "line_items": [
                    {"quantity": "1", "cost": "10", "tax_name1": "VAT", "tax_rate1": "10"}
                ],
                "discount": "0",
                "uses_inclusive_taxes": False
            }
        }
    )


class CreateInvoiceRequestSchema(InvoiceFieldsDTO):
    """
    Request schema for creating a draft invoice

    Used for POST /billing/invoices endpoint.
    """

    client_id: int = Field(..., gt=0, description="Billed client")

    currency: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="ISO 4217 code; defaults to the currency setting"
    )


class UpdateInvoiceRequestSchema(BaseModel):
    """
    Request schema for updating an invoice

    Used for PUT /billing/invoices/{invoice_id}. Omitted fields keep their value.
    """

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


class RecordPaymentRequestSchema(BaseModel):
    """
    Request schema for recording a payment

    Used for POST /billing/invoices/{invoice_id}/payments endpoint.
    """

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount received (must be > 0)"
    )

    payment_type: PaymentType = Field(
        default=PaymentType.MANUAL,
        description="card, bank_transfer or manual"
    )

    transaction_reference: Optional[str] = Field(
        default=None,
        max_length=255,
        description="External reference of the payment"
    )

    @field_validator('payment_type')
    @classmethod
    def validate_payment_type(cls, v):
        """Credit payments are created by credit application only"""
        if v == PaymentType.CREDIT:
            raise ValueError("Credit payments cannot be recorded directly")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "amount": "40.00",
                "payment_type": "bank_transfer",
                "transaction_reference": "SEPA-2024-0001"
            }
        }
    )


class ApplyLateFeeRequestSchema(BaseModel):
    amount: Optional[Decimal] = Field(default=None, ge=0, description="Fixed fee")
    percent: Optional[Decimal] = Field(default=None, ge=0, description="Percentage of the amount due")


class AdjustmentRequestSchema(BaseModel):
    """
    Request schema for a manual balance adjustment

    Used for POST /billing/clients/{client_id}/adjustments endpoint. The
    invoice or credit must belong to the client in the path.
    """

    entity_type: EntityKind = Field(default=EntityKind.INVOICE)

    entity_id: int = Field(..., description="Invoice or credit ID")

    amount: Decimal = Field(..., description="Signed delta (must not be 0)")

    note: str = Field(default="Manual adjustment", max_length=500)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v == 0:
            raise ValueError("Amount must not be 0")
        return v

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


class CreateCreditRequestSchema(BaseModel):
    amount: Decimal = Field(..., gt=0)
    invoice_id: Optional[int] = Field(
        default=None,
        description="Invoice whose paid amount the credit reverses"
    )


class RefundPaymentRequestSchema(BaseModel):
    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Amount to refund; everything not yet refunded when omitted"
    )


class ReconcileRequestSchema(BaseModel):
    """
    Request schema for ledger reconciliation

    Used for POST /billing/clients/reconcile endpoint.
    """

    client_id: Optional[int] = Field(
        default=None,
        description="Reconcile one client only; all clients when omitted"
    )

    fix: bool = Field(
        default=False,
        description="Write corrective entries for the discrepancies found"
    )
