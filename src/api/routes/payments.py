"""Payment API Routes"""

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.error import raise_for_error
from src.api.schemas.billing_request import RefundPaymentRequestSchema
from src.app.services.balance_ledger import BalanceLedger
from src.app.use_cases.billing.dtos import PaymentResponseDTO, RefundPaymentCommandDTO
from src.app.use_cases.billing.refund_payment import RefundPayment
from src.adapter.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyLedgerEntryRepository,
    SqlAlchemyPaymentRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_session

router = APIRouter(prefix="/billing/payments", tags=["Payments"])


@router.post(
    "/{payment_id}/refund",
    response_model=PaymentResponseDTO,
    responses={
        400: {
            "description": "Refund not possible",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "REFUND_EXCEEDS_PAYMENT",
                            "message": "Refund of 50.00 exceeds refundable 40.00"
                        }
                    }
                }
            }
        }
    }
)
async def refund_payment(
    payment_id: int,
    request: RefundPaymentRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """
    Refund a payment, fully or partially.

    The refunded amount is taken back from the invoices the payment was
    applied to, in application order, and returned to their balances.
    """
    client_repo = SqlAlchemyClientRepository(session)
    invoice_repo = SqlAlchemyInvoiceRepository(session)
    ledger = BalanceLedger(SqlAlchemyLedgerEntryRepository(session), client_repo, invoice_repo)

    use_case = RefundPayment(
        SqlAlchemyUnitOfWork(session),
        client_repo,
        invoice_repo,
        SqlAlchemyPaymentRepository(session),
        ledger,
    )
    result = await use_case.execute(RefundPaymentCommandDTO(payment_id=payment_id, amount=request.amount))

    if result.is_err():
        raise_for_error(result.error)

    return result.value
