"""ApplyAdjustment Use Case

Manual balance adjustment of an invoice or credit.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger, EntityRef
from src.domain.exceptions import BillingError, InvoiceValidationError
from .dtos import ApplyAdjustmentCommandDTO, LedgerEntryDTO

logger = logging.getLogger(__name__)


class ApplyAdjustment:
    """
    Use Case: Adjust a balance by a signed amount

    Business Rules:
    1. The adjustment goes through the balance ledger (entity + entry together)
    2. Applying +X then -X restores the balance and leaves two entries
    3. Draft and cancelled invoices cannot be adjusted
    4. Client balances only follow their invoices and are never adjusted directly
    5. When a client is given, the adjusted entity must belong to it
    """

    def __init__(self, uow: UnitOfWork, ledger: BalanceLedger):
        self.uow = uow
        self.ledger = ledger

    async def execute(self, command: ApplyAdjustmentCommandDTO) -> Result[LedgerEntryDTO]:
        try:
            if command.amount == 0:
                return Return.err(
                    Error(
                        code="VALIDATION_ERROR",
                        message="Adjustment amount must not be zero",
                    )
                )

            ref = EntityRef(kind=command.entity_type, id=command.entity_id)
            entry = await self.ledger.apply_adjustment(ref, command.amount, command.note)
            if command.client_id is not None and entry.client_id != command.client_id:
                raise InvoiceValidationError(
                    f"{ref.kind.value.capitalize()} {ref.id} does not belong to client {command.client_id}"
                )

            await self.uow.commit()

            logger.info(
                f"Adjusted {ref.kind.value} {ref.id} by {command.amount} "
                f"(client {entry.client_id}, {entry.stream.value} now {entry.balance})"
            )
            return Return.ok(LedgerEntryDTO.from_entry(entry))

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="ADJUSTMENT_FAILED",
                    message="Failed to apply balance adjustment",
                    reason=str(e),
                )
            )
