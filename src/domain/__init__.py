from .base import BaseModel, generate_uuid
from .company import Company
from .group_setting import GroupSetting
from .client import Client
from .client_contact import ClientContact
from .invoice import Invoice, InvoiceStatus
from .invoice_invitation import InvoiceInvitation
from .credit import Credit, CreditStatus
from .payment import Payment, PaymentStatus, PaymentType
from .paymentable import Paymentable, PaymentableType
from .ledger_entry import LedgerEntry, LedgerStream, LedgerActivity
from .company_gateway import CompanyGateway, FeesAndLimits
from .client_gateway_token import ClientGatewayToken
from .line_item import LineItem, LineItemType, ProductTaxType

__all__ = [
    "BaseModel",
    "generate_uuid",
    "Company",
    "GroupSetting",
    "Client",
    "ClientContact",
    "Invoice",
    "InvoiceStatus",
    "InvoiceInvitation",
    "Credit",
    "CreditStatus",
    "Payment",
    "PaymentStatus",
    "PaymentType",
    "Paymentable",
    "PaymentableType",
    "LedgerEntry",
    "LedgerStream",
    "LedgerActivity",
    "CompanyGateway",
    "FeesAndLimits",
    "ClientGatewayToken",
    "LineItem",
    "LineItemType",
    "ProductTaxType",
]
