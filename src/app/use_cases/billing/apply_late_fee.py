"""ApplyLateFee Use Case"""

import logging
from decimal import Decimal
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.company_repository import CompanyRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.exceptions import BillingError
from src.domain.invoice import PAYABLE_STATUSES
from src.domain.ledger_entry import LedgerActivity
from src.domain.line_item import LineItem, LineItemType
from src.domain.number import round_value, to_decimal
from src.domain.settings import resolve_setting
from .dtos import ApplyLateFeeCommandDTO, InvoiceLedgerResponseDTO, InvoiceResponseDTO, LedgerEntryDTO
from .support import load_setting_levels

logger = logging.getLogger(__name__)


class ApplyLateFee:
    """
    Use Case: Add a late fee line to an overdue invoice

    fee = amount + percent of (partial if set, else balance). Without an
    explicit amount or percent the first late fee settings apply. The fee
    raises the invoice total and balance through the ledger.
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

    async def execute(self, command: ApplyLateFeeCommandDTO) -> Result[InvoiceLedgerResponseDTO]:
        try:
            invoice = await self.invoice_repo.get_by_id(command.invoice_id, for_update=True)
            if invoice is None or invoice.is_deleted:
                return Return.err(
                    Error(code="INVOICE_NOT_FOUND", message=f"Invoice {command.invoice_id} not found")
                )
            if invoice.status not in PAYABLE_STATUSES:
                return Return.err(
                    Error(
                        code="INVOICE_NOT_PAYABLE",
                        message=f"Invoice {invoice.number} is {invoice.status.value}",
                    )
                )

            client = await self.client_repo.get_by_id(invoice.client_id, for_update=True)

            amount, percent = command.amount, command.percent
            if amount is None and percent is None:
                group, company = await load_setting_levels(self.company_repo, client)
                amount = to_decimal(resolve_setting("late_fee_amount1", client, group, company))
                percent = to_decimal(resolve_setting("late_fee_percent1", client, group, company))

            fee = round_value(
                (amount or Decimal("0")) + invoice.payable_amount() * (percent or Decimal("0")) / 100
            )
            if fee <= 0:
                return Return.err(
                    Error(
                        code="LATE_FEE_NOT_APPLICABLE",
                        message=f"No late fee configured for invoice {invoice.number}",
                    )
                )

            invoice.add_line_item(
                LineItem(
                    product_key="late_fee",
                    notes=f"Late fee for invoice {invoice.number}",
                    quantity=Decimal("1"),
                    cost=fee,
                    type_id=LineItemType.LATE_FEE,
                )
            )
            delta = invoice.recalculate()
            entry = await self.ledger.adjust_invoice_balance(
                invoice, client, delta, f"Late fee added to Invoice {invoice.number}", LedgerActivity.LATE_FEE
            )
            invoice.set_calculated_status()

            invoice = await self.invoice_repo.update(invoice)
            await self.client_repo.update(client)
            await self.uow.commit()

            logger.info(f"Late fee {fee} added to invoice {invoice.number}")
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
                Error(code="LATE_FEE_FAILED", message="Failed to apply late fee", reason=str(e))
            )
