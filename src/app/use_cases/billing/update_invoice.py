"""UpdateInvoice Use Case

Changes invoice fields, recomputes totals and moves the balance difference
through the ledger.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.company_repository import CompanyRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.exceptions import BillingError
from src.domain.invoice import InvoiceStatus
from src.domain.ledger_entry import LedgerActivity
from .dtos import InvoiceLedgerResponseDTO, InvoiceResponseDTO, LedgerEntryDTO, UpdateInvoiceCommandDTO
from .support import load_setting_levels, resolve_line_taxes

logger = logging.getLogger(__name__)


class UpdateInvoice:
    """
    Use Case: Update an invoice

    Business Rules:
    1. Cancelled invoices cannot be edited
    2. The new total cannot drop below what has already been paid
    3. balance changes by exactly the change of the total
    4. Sent, partial and paid invoices move the client balance with them
    """

    def __init__(
        self,
        uow: UnitOfWork,
        client_repo: ClientRepository,
        company_repo: CompanyRepository,
        invoice_repo: InvoiceRepository,
        ledger: BalanceLedger,
    ):
        self.uow = uow
        self.client_repo = client_repo
        self.company_repo = company_repo
        self.invoice_repo = invoice_repo
        self.ledger = ledger

    async def execute(self, command: UpdateInvoiceCommandDTO) -> Result[InvoiceLedgerResponseDTO]:
        try:
            invoice = await self.invoice_repo.get_by_id(command.invoice_id, for_update=True)
            if invoice is None or invoice.is_deleted:
                return Return.err(
                    Error(code="INVOICE_NOT_FOUND", message=f"Invoice {command.invoice_id} not found")
                )
            if invoice.status == InvoiceStatus.CANCELLED:
                return Return.err(
                    Error(code="INVOICE_NOT_EDITABLE", message=f"Invoice {invoice.number} is cancelled")
                )

            client = await self.client_repo.get_by_id(invoice.client_id, for_update=True)
            _, company = await load_setting_levels(self.company_repo, client)

            for field, value in command.changes().items():
                setattr(invoice, field, value)
            if command.line_items is not None:
                invoice.set_line_items(resolve_line_taxes(command.line_items, company, client))

            delta = invoice.recalculate()

            if invoice.amount < invoice.paid_to_date:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="INVOICE_AMOUNT_BELOW_PAID",
                        message=f"Invoice total {invoice.amount} is below the amount already paid",
                        reason=f"paid_to_date={invoice.paid_to_date}",
                    )
                )
            if invoice.partial > invoice.amount:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="VALIDATION_ERROR",
                        message=f"Partial {invoice.partial} exceeds invoice total {invoice.amount}",
                    )
                )

            entry = await self.ledger.adjust_invoice_balance(
                invoice, client, delta, f"Invoice {invoice.number} updated", LedgerActivity.INVOICE
            )
            invoice.set_calculated_status()

            invoice = await self.invoice_repo.update(invoice)
            await self.client_repo.update(client)
            await self.uow.commit()

            logger.info(f"Updated invoice {invoice.number}: amount={invoice.amount}, delta={delta}")
            return Return.ok(
                InvoiceLedgerResponseDTO(
                    invoice=InvoiceResponseDTO.from_invoice(invoice),
                    ledger_entries=[LedgerEntryDTO.from_entry(entry)] if entry else [],
                )
            )

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="UPDATE_INVOICE_FAILED",
                    message="Failed to update invoice",
                    reason=str(e),
                )
            )
