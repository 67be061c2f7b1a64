from .company_repository import SqlAlchemyCompanyRepository
from .client_repository import SqlAlchemyClientRepository
from .invoice_repository import SqlAlchemyInvoiceRepository
from .credit_repository import SqlAlchemyCreditRepository
from .payment_repository import SqlAlchemyPaymentRepository
from .ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from .gateway_token_repository import SqlAlchemyGatewayTokenRepository

__all__ = [
    "SqlAlchemyCompanyRepository",
    "SqlAlchemyClientRepository",
    "SqlAlchemyInvoiceRepository",
    "SqlAlchemyCreditRepository",
    "SqlAlchemyPaymentRepository",
    "SqlAlchemyLedgerEntryRepository",
    "SqlAlchemyGatewayTokenRepository",
]
