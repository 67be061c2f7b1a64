"""Invoice API Routes

FastAPI routes for invoice calculation, lifecycle, payments and auto billing.
"""

from fastapi import APIRouter, Depends, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.api.error import raise_for_error
from src.api.schemas.billing_request import (
    ApplyLateFeeRequestSchema,
    CalculateInvoiceRequestSchema,
    CreateInvoiceRequestSchema,
    RecordPaymentRequestSchema,
    UpdateInvoiceRequestSchema,
)
from src.app.services.balance_ledger import BalanceLedger
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import GatewayRegistry
from src.app.use_cases.billing.dtos import (
    ApplyLateFeeCommandDTO,
    AutoBillCommandDTO,
    AutoBillResultDTO,
    CreateInvoiceCommandDTO,
    InvoiceLedgerResponseDTO,
    InvoiceResponseDTO,
    PaymentResponseDTO,
    RecordPaymentCommandDTO,
    UpdateInvoiceCommandDTO,
)
from src.app.use_cases.billing.apply_late_fee import ApplyLateFee
from src.app.use_cases.billing.auto_bill_invoice import AutoBillInvoice
from src.app.use_cases.billing.cancel_invoice import CancelInvoice
from src.app.use_cases.billing.create_invoice import CreateInvoice
from src.app.use_cases.billing.mark_invoice_sent import MarkInvoiceSent
from src.app.use_cases.billing.record_payment import RecordPayment
from src.app.use_cases.billing.update_invoice import UpdateInvoice
from src.adapter.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyCompanyRepository,
    SqlAlchemyCreditRepository,
    SqlAlchemyGatewayTokenRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyLedgerEntryRepository,
    SqlAlchemyPaymentRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_gateway_registry, get_notification_service, get_session
from src.domain.invoice_calculator import CalculationResult, compute

router = APIRouter(prefix="/billing/invoices", tags=["Invoices"])

NOT_FOUND_RESPONSE = {
    404: {
        "description": "Invoice not found",
        "content": {
            "application/json": {
                "example": {
                    "error": {
                        "code": "INVOICE_NOT_FOUND",
                        "message": "Invoice 123 not found"
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
    "/calculate",
    response_model=CalculationResult,
    status_code=status.HTTP_200_OK,
)
async def calculate_invoice(request: CalculateInvoiceRequestSchema):
    """
    Preview invoice totals without persisting anything.

    Returns subtotal, discount, surcharges, the tax map, total taxes, total
    and balance (total minus `paid_to_date`).

    **Example request:**
    ```json
    {
      "line_items": [{"quantity": "1", "cost": "10", "tax_name1": "VAT", "tax_rate1": "10"}]
    }
    ```
    """
    return compute(request.to_snapshot())


@router.post(
    "",
    response_model=InvoiceResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {
            "description": "Client not found",
            "content": {
                "application/json": {
                    "example": {"error": {"code": "CLIENT_NOT_FOUND", "message": "Client 7 not found"}}
                }
            }
        }
    }
)
async def create_invoice(
    request: CreateInvoiceRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """
    Create a draft invoice.

    Totals are computed from the line items; a draft does not touch the
    client balance until it is sent.
    """
    use_case = CreateInvoice(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyCompanyRepository(session),
        SqlAlchemyInvoiceRepository(session),
        _ledger(session),
    )
    result = await use_case.execute(CreateInvoiceCommandDTO(**request.model_dump()))

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.put(
    "/{invoice_id}",
    response_model=InvoiceLedgerResponseDTO,
    responses=NOT_FOUND_RESPONSE,
)
async def update_invoice(
    invoice_id: int,
    request: UpdateInvoiceRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """
    Update invoice fields and recompute totals.

    The balance moves by the change of the total; the difference is
    recorded in the ledger when the invoice is not a draft.
    """
    use_case = UpdateInvoice(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyCompanyRepository(session),
        SqlAlchemyInvoiceRepository(session),
        _ledger(session),
    )
    command = UpdateInvoiceCommandDTO(invoice_id=invoice_id, **request.model_dump(exclude_unset=True))
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post("/{invoice_id}/send", response_model=InvoiceLedgerResponseDTO, responses=NOT_FOUND_RESPONSE)
async def send_invoice(invoice_id: int, session: AsyncSession = Depends(get_session)):
    """Mark a draft invoice as sent, moving its balance into the client balance."""
    use_case = MarkInvoiceSent(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyInvoiceRepository(session),
        _ledger(session),
    )
    result = await use_case.execute(invoice_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post("/{invoice_id}/cancel", response_model=InvoiceLedgerResponseDTO, responses=NOT_FOUND_RESPONSE)
async def cancel_invoice(invoice_id: int, session: AsyncSession = Depends(get_session)):
    """Cancel an open invoice, removing its balance from the client balance."""
    use_case = CancelInvoice(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyInvoiceRepository(session),
        _ledger(session),
    )
    result = await use_case.execute(invoice_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/{invoice_id}/payments",
    response_model=PaymentResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND_RESPONSE,
)
async def record_payment(
    invoice_id: int,
    request: RecordPaymentRequestSchema,
    session: AsyncSession = Depends(get_session),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Record a payment received for an invoice.

    Amounts above the balance are kept as unapplied overpayment.
    """
    use_case = RecordPayment(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyInvoiceRepository(session),
        SqlAlchemyPaymentRepository(session),
        _ledger(session),
        notification_service,
    )
    command = RecordPaymentCommandDTO(
        invoice_id=invoice_id,
        amount=request.amount,
        payment_type=request.payment_type,
        transaction_reference=request.transaction_reference,
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post("/{invoice_id}/late-fee", response_model=InvoiceLedgerResponseDTO, responses=NOT_FOUND_RESPONSE)
async def apply_late_fee(
    invoice_id: int,
    request: ApplyLateFeeRequestSchema,
    session: AsyncSession = Depends(get_session)
):
    """Add a late fee line item; without amount and percent the late fee settings apply."""
    use_case = ApplyLateFee(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyCompanyRepository(session),
        SqlAlchemyInvoiceRepository(session),
        _ledger(session),
    )
    command = ApplyLateFeeCommandDTO(invoice_id=invoice_id, amount=request.amount, percent=request.percent)
    result = await use_case.execute(command)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/{invoice_id}/auto-bill",
    response_model=AutoBillResultDTO,
    responses={
        **NOT_FOUND_RESPONSE,
        402: {
            "description": "Collection failed",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "no_payment_method_specified",
                            "message": "No payment method can charge 60.00 for invoice INV-000012"
                        }
                    }
                }
            }
        },
    }
)
async def auto_bill_invoice(
    invoice_id: int,
    session: AsyncSession = Depends(get_session),
    gateways: GatewayRegistry = Depends(get_gateway_registry),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Collect an invoice now: client credits first, then a stored payment method.
    """
    use_case = AutoBillInvoice(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyClientRepository(session),
        SqlAlchemyCompanyRepository(session),
        SqlAlchemyInvoiceRepository(session),
        SqlAlchemyCreditRepository(session),
        SqlAlchemyPaymentRepository(session),
        SqlAlchemyGatewayTokenRepository(session),
        _ledger(session),
        gateways,
        notification_service,
        max_tries=ApplicationConfig.AUTO_BILL_MAX_TRIES,
        gateway_timeout=ApplicationConfig.GATEWAY_TIMEOUT_SECONDS,
    )
    result = await use_case.execute(AutoBillCommandDTO(invoice_id=invoice_id))

    if result.is_err():
        raise_for_error(result.error)

    return result.value
