"""Billing domain use cases"""
from .apply_adjustment import ApplyAdjustment
from .create_invoice import CreateInvoice
from .update_invoice import UpdateInvoice
from .mark_invoice_sent import MarkInvoiceSent
from .cancel_invoice import CancelInvoice
from .record_payment import RecordPayment
from .refund_payment import RefundPayment
from .apply_late_fee import ApplyLateFee
from .create_credit import CreateCredit
from .get_client_balance import GetClientBalance
from .list_ledger_entries import ListLedgerEntries
from .reconcile_ledger import ReconcileLedger
from .auto_bill_invoice import (
    AutoBillInvoice,
    CreditConsumption,
    plan_credit_application,
    select_gateway_token,
)
from .dtos import (
    InvoiceFieldsDTO,
    CreateInvoiceCommandDTO,
    UpdateInvoiceCommandDTO,
    InvoiceResponseDTO,
    LedgerEntryDTO,
    InvoiceLedgerResponseDTO,
    ApplyAdjustmentCommandDTO,
    RecordPaymentCommandDTO,
    RefundPaymentCommandDTO,
    PaymentResponseDTO,
    ApplyLateFeeCommandDTO,
    CreateCreditCommandDTO,
    CreditResponseDTO,
    ClientBalanceResponseDTO,
    LedgerEntryListResponseDTO,
    DiscrepancyKind,
    ReconcileCommandDTO,
    DiscrepancyDTO,
    ReconciliationResultDTO,
    AutoBillCommandDTO,
    AutoBillOutcome,
    AutoBillResultDTO,
    AutoBillSweepResultDTO,
)

__all__ = [
    "ApplyAdjustment",
    "CreateInvoice",
    "UpdateInvoice",
    "MarkInvoiceSent",
    "CancelInvoice",
    "RecordPayment",
    "RefundPayment",
    "ApplyLateFee",
    "CreateCredit",
    "GetClientBalance",
    "ListLedgerEntries",
    "ReconcileLedger",
    "AutoBillInvoice",
    "CreditConsumption",
    "plan_credit_application",
    "select_gateway_token",
    "InvoiceFieldsDTO",
    "CreateInvoiceCommandDTO",
    "UpdateInvoiceCommandDTO",
    "InvoiceResponseDTO",
    "LedgerEntryDTO",
    "InvoiceLedgerResponseDTO",
    "ApplyAdjustmentCommandDTO",
    "RecordPaymentCommandDTO",
    "RefundPaymentCommandDTO",
    "PaymentResponseDTO",
    "ApplyLateFeeCommandDTO",
    "CreateCreditCommandDTO",
    "CreditResponseDTO",
    "ClientBalanceResponseDTO",
    "LedgerEntryListResponseDTO",
    "DiscrepancyKind",
    "ReconcileCommandDTO",
    "DiscrepancyDTO",
    "ReconciliationResultDTO",
    "AutoBillCommandDTO",
    "AutoBillOutcome",
    "AutoBillResultDTO",
    "AutoBillSweepResultDTO",
]
