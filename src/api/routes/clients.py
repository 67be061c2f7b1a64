"""Client API Routes

FastAPI routes for client balances, the ledger, manual adjustments, credits
and reconciliation.
"""

from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.api.error import raise_for_error
from src.api.schemas.billing_request import (
    AdjustmentRequestSchema,
    CreateCreditRequestSchema,
    ReconcileRequestSchema,
)
from src.app.services.balance_ledger import BalanceLedger
from src.app.services.notification_service import NotificationService
from src.app.use_cases.billing.dtos import (
    ApplyAdjustmentCommandDTO,
    ClientBalanceResponseDTO,
    CreateCreditCommandDTO,
    CreditResponseDTO,
    LedgerEntryDTO,
    LedgerEntryListResponseDTO,
    ReconcileCommandDTO,
    ReconciliationResultDTO,
)
from src.app.use_cases.billing.apply_adjustment import ApplyAdjustment
from src.app.use_cases.billing.create_credit import CreateCredit
from src.app.use_cases.billing.get_client_balance import GetClientBalance
from src.app.use_cases.billing.list_ledger_entries import ListLedgerEntries
from src.app.use_cases.billing.reconcile_ledger import ReconcileLedger
from src.adapter.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyCompanyRepository,
    SqlAlchemyCreditRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyLedgerEntryRepository,
    SqlAlchemyPaymentRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_notification_service, get_session
from src.domain.ledger_entry import LedgerStream

router = APIRouter(prefix="/billing/clients", tags=["Clients"])

CLIENT_NOT_FOUND_RESPONSE = {
    404: {
        "description": "Client not found",
        "content": {
            "application/json": {
                "example": {
                    "error": {
                        "code": "CLIENT_NOT_FOUND",
                        "message": "Client 7 not found"
                    }
                }
            }
        }
    }
}


def _ledger(session: AsyncSession) -> BalanceLedger:
    return BalanceLedger(
        SqlAlchemyLedgerEntryRepository(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyInvoiceRepository(session),
        SqlAlchemyCreditRepository(session),
    )


@router.post(
    "/reconcile",
    response_model=ReconciliationResultDTO,
    status_code=status.HTTP_200_OK,
)
async def reconcile(
    request: ReconcileRequestSchema,
    session: AsyncSession = Depends(get_session),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Compare stored client balances with invoices, payments, credits and the ledger.

    With `fix` every discrepancy is corrected through a corrective ledger
    entry (or a created contact / invitation) and committed at once.
    """
    use_case = ReconcileLedger(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyInvoiceRepository(session),
        SqlAlchemyPaymentRepository(session),
        SqlAlchemyCreditRepository(session),
        SqlAlchemyLedgerEntryRepository(session),
        _ledger(session),
        tolerance=Decimal(str(ApplicationConfig.RECONCILIATION_TOLERANCE)),
        notification_service=notification_service,
    )
    result = await use_case.execute(ReconcileCommandDTO(client_id=request.client_id, fix=request.fix))

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.get(
    "/{client_id}/balance",
    response_model=ClientBalanceResponseDTO,
    responses=CLIENT_NOT_FOUND_RESPONSE,
)
async def get_client_balance(client_id: int, session: AsyncSession = Depends(get_session)):
    """
    Get the balance, paid to date and credit balance of a client.

    **Example response:**
    ```json
    {
      "client_id": 7,
      "currency": "EUR",
      "balance": "1234.56",
      "paid_to_date": "400.00",
      "credit_balance": "20.00",
      "formatted_balance": "1.234,56 €",
      "formatted_credit_balance": "20,00 €",
      "last_updated": "2024-01-01T00:00:00Z"
    }
    ```
    """
    use_case = GetClientBalance(SqlAlchemyClientRepository(session), SqlAlchemyCompanyRepository(session))
    result = await use_case.execute(client_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.get(
    "/{client_id}/ledger",
    response_model=LedgerEntryListResponseDTO,
    responses=CLIENT_NOT_FOUND_RESPONSE,
)
async def list_ledger_entries(
    client_id: int,
    stream: Optional[LedgerStream] = Query(default=None, description="balance, paid_to_date or credit_balance"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    """List ledger entries of a client, newest first."""
    use_case = ListLedgerEntries(SqlAlchemyLedgerEntryRepository(session), SqlAlchemyClientRepository(session))
    result = await use_case.execute(client_id, stream=stream, limit=limit, offset=offset)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/{client_id}/adjustments",
    response_model=LedgerEntryDTO,
    status_code=status.HTTP_201_CREATED,
    responses=CLIENT_NOT_FOUND_RESPONSE,
)
async def apply_adjustment(
    client_id: int,
    request: AdjustmentRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Apply a manual balance adjustment to one of the client's invoices or credits.

    The client balance follows through the ledger; it is never adjusted on
    its own, so `entity_type` "client" is rejected.
    """
    use_case = ApplyAdjustment(SqlAlchemyUnitOfWork(session), _ledger(session))
    command = ApplyAdjustmentCommandDTO(
        entity_type=request.entity_type,
        entity_id=request.entity_id,
        client_id=client_id,
        amount=request.amount,
        note=request.note,
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/{client_id}/credits",
    response_model=CreditResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses=CLIENT_NOT_FOUND_RESPONSE,
)
async def create_credit(
    client_id: int,
    request: CreateCreditRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Issue a credit to a client; with `invoice_id` it reverses money paid on that invoice."""
    use_case = CreateCredit(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyInvoiceRepository(session),
        SqlAlchemyCreditRepository(session),
        _ledger(session),
    )
    command = CreateCreditCommandDTO(client_id=client_id, amount=request.amount, invoice_id=request.invoice_id)
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)

    return result.value
