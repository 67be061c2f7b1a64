"""CreateInvoice Use Case

Creates a draft invoice and computes its totals.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.company_repository import CompanyRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.exceptions import BillingError
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.ledger_entry import LedgerActivity
from src.domain.settings import resolve_setting
from .dtos import CreateInvoiceCommandDTO, InvoiceResponseDTO
from .support import HEADER_FIELDS, load_setting_levels, resolve_line_taxes

logger = logging.getLogger(__name__)


class CreateInvoice:
    """
    Use Case: Create a draft invoice

    Business Rules:
    1. Currency, tax mode and auto billing default from the settings cascade
    2. Line item taxes are resolved from product tax types when the
       company calculates taxes
    3. Totals come from the invoice calculator; the draft balance equals
       the total and does not touch the client balance
    4. The partial target cannot exceed the invoice total

    Flow:
    1. Load client (locked), group and company settings
    2. Build the invoice and compute totals
    3. Persist the invoice and set its balance through the ledger
    4. Commit and return the invoice
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

    async def execute(self, command: CreateInvoiceCommandDTO) -> Result[InvoiceResponseDTO]:
        """
        Execute invoice creation

        Args:
            command: CreateInvoiceCommandDTO with client, line items and header fields

        Returns:
            Result[InvoiceResponseDTO]: Created draft invoice or error
        """
        try:
            # Step 1: Client and settings
            client = await self.client_repo.get_by_id(command.client_id, for_update=True)
            if client is None or client.is_deleted:
                return Return.err(
                    Error(
                        code="CLIENT_NOT_FOUND",
                        message=f"Client {command.client_id} not found",
                    )
                )

            group, company = await load_setting_levels(self.company_repo, client)

            currency = command.currency or resolve_setting("currency", client, group, company)
            inclusive = command.uses_inclusive_taxes
            if inclusive is None:
                inclusive = bool(resolve_setting("inclusive_taxes", client, group, company))
            auto_bill = command.auto_bill_enabled
            if auto_bill is None:
                auto_bill = resolve_setting("auto_bill", client, group, company) in ("always", "optout")

            # Step 2: Build and compute
            invoice = Invoice(
                company_id=client.company_id,
                client_id=client.id,
                number=await self.invoice_repo.generate_number(client.company_id),
                status=InvoiceStatus.DRAFT,
                currency=str(currency).upper(),
                uses_inclusive_taxes=inclusive,
                auto_bill_enabled=auto_bill,
                **{field: getattr(command, field) for field in HEADER_FIELDS},
            )
            invoice.set_line_items(resolve_line_taxes(command.line_items, company, client))
            delta = invoice.recalculate()

            if invoice.partial > invoice.amount:
                return Return.err(
                    Error(
                        code="VALIDATION_ERROR",
                        message=f"Partial {invoice.partial} exceeds invoice total {invoice.amount}",
                    )
                )

            # Step 3: Persist
            invoice = await self.invoice_repo.create(invoice)
            await self.ledger.adjust_invoice_balance(
                invoice, client, delta, f"Invoice {invoice.number} created", LedgerActivity.INVOICE
            )
            invoice = await self.invoice_repo.update(invoice)

            # Step 4: Commit
            await self.uow.commit()

            logger.info(
                f"Created invoice {invoice.number} for client {client.id}: amount={invoice.amount}"
            )
            return Return.ok(InvoiceResponseDTO.from_invoice(invoice))

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CREATE_INVOICE_FAILED",
                    message="Failed to create invoice",
                    reason=str(e),
                )
            )
