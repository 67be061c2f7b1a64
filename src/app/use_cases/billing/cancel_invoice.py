"""CancelInvoice Use Case"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.exceptions import BillingError
from .dtos import InvoiceLedgerResponseDTO, InvoiceResponseDTO, LedgerEntryDTO

logger = logging.getLogger(__name__)


class CancelInvoice:
    """Use Case: Cancel a sent or partially paid invoice, removing its balance from the client"""

    def __init__(
        self,
        uow: UnitOfWork,
        client_repo: ClientRepository,
        invoice_repo: InvoiceRepository,
        ledger: BalanceLedger,
    ):
        self.uow = uow
        self.client_repo = client_repo
        self.invoice_repo = invoice_repo
        self.ledger = ledger

    async def execute(self, invoice_id: int) -> Result[InvoiceLedgerResponseDTO]:
        try:
            invoice = await self.invoice_repo.get_by_id(invoice_id, for_update=True)
            if invoice is None or invoice.is_deleted:
                return Return.err(Error(code="INVOICE_NOT_FOUND", message=f"Invoice {invoice_id} not found"))

            client = await self.client_repo.get_by_id(invoice.client_id, for_update=True)
            entry = await self.ledger.cancel(invoice, client, f"Invoice {invoice.number} cancelled")

            invoice = await self.invoice_repo.update(invoice)
            await self.client_repo.update(client)
            await self.uow.commit()

            logger.info(f"Invoice {invoice.number} cancelled")
            return Return.ok(
                InvoiceLedgerResponseDTO(
                    invoice=InvoiceResponseDTO.from_invoice(invoice),
                    ledger_entries=[LedgerEntryDTO.from_entry(entry)],
                )
            )

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="CANCEL_INVOICE_FAILED", message="Failed to cancel invoice", reason=str(e))
            )
