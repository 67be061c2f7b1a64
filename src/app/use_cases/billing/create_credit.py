"""CreateCredit Use Case"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.credit_repository import CreditRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.credit import Credit, CreditStatus
from src.domain.exceptions import BillingError
from .dtos import CreateCreditCommandDTO, CreditResponseDTO

logger = logging.getLogger(__name__)


class CreateCredit:
    """
    Use Case: Issue a credit to a client

    The credit balance becomes available for credit application. A credit
    issued against an invoice reverses money the client paid for it and
    lowers the client's paid_to_date by the credit amount.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        client_repo: ClientRepository,
        invoice_repo: InvoiceRepository,
        credit_repo: CreditRepository,
        ledger: BalanceLedger,
    ):
        self.uow = uow
        self.client_repo = client_repo
        self.invoice_repo = invoice_repo
        self.credit_repo = credit_repo
        self.ledger = ledger

    async def execute(self, command: CreateCreditCommandDTO) -> Result[CreditResponseDTO]:
        try:
            client = await self.client_repo.get_by_id(command.client_id, for_update=True)
            if client is None or client.is_deleted:
                return Return.err(
                    Error(code="CLIENT_NOT_FOUND", message=f"Client {command.client_id} not found")
                )

            if command.invoice_id is not None:
                invoice = await self.invoice_repo.get_by_id(command.invoice_id)
                if invoice is None or invoice.is_deleted or invoice.client_id != client.id:
                    return Return.err(
                        Error(
                            code="INVOICE_NOT_FOUND",
                            message=f"Invoice {command.invoice_id} not found for client {client.id}",
                        )
                    )

            credit = Credit(
                company_id=client.company_id,
                client_id=client.id,
                invoice_id=command.invoice_id,
                number=await self.credit_repo.generate_number(client.company_id),
                status=CreditStatus.SENT,
                amount=command.amount,
                balance=command.amount,
            )
            credit = await self.credit_repo.create(credit)

            entries = await self.ledger.issue_credit(credit, client, f"Credit {credit.number} issued")
            await self.client_repo.update(client)
            await self.uow.commit()

            logger.info(f"Issued credit {credit.number} of {credit.amount} to client {client.id}")
            return Return.ok(CreditResponseDTO.from_credit(credit, entries))

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="CREATE_CREDIT_FAILED", message="Failed to create credit", reason=str(e))
            )
