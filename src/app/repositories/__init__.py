from .company_repository import CompanyRepository
from .client_repository import ClientRepository
from .invoice_repository import InvoiceRepository
from .credit_repository import CreditRepository
from .payment_repository import PaymentRepository
from .ledger_entry_repository import LedgerEntryRepository
from .gateway_token_repository import GatewayTokenRepository

__all__ = [
    "CompanyRepository",
    "ClientRepository",
    "InvoiceRepository",
    "CreditRepository",
    "PaymentRepository",
    "LedgerEntryRepository",
    "GatewayTokenRepository",
]
