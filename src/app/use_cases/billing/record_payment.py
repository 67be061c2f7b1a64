"""RecordPayment Use Case

Records money received for an invoice and applies it to the invoice balance.
"""

import logging
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.services.notification_service import BillingEvent, BillingEventType, NotificationService
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.exceptions import BillingError
from src.domain.invoice import InvoiceStatus
from src.domain.payment import Payment, PaymentStatus
from src.domain.paymentable import Paymentable, PaymentableType
from .dtos import PaymentResponseDTO, RecordPaymentCommandDTO

logger = logging.getLogger(__name__)


class RecordPayment:
    """
    Use Case: Record a payment against an invoice

    Business Rules:
    1. Only sent/partial invoices with a positive balance accept payments
    2. applied = min(amount, invoice balance); the rest stays unapplied
    3. The whole amount counts towards the client's paid_to_date
    4. Payment, paymentable link, balances and ledger entries commit together

    Flow:
    1. Load invoice and client with locks
    2. Create payment and its invoice link
    3. Apply the payment through the ledger
    4. Commit, then publish payment_created / invoice_paid
    """

    def __init__(
        self,
        uow: UnitOfWork,
        client_repo: ClientRepository,
        invoice_repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        ledger: BalanceLedger,
        notification_service: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.client_repo = client_repo
        self.invoice_repo = invoice_repo
        self.payment_repo = payment_repo
        self.ledger = ledger
        self.notification_service = notification_service

    async def execute(self, command: RecordPaymentCommandDTO) -> Result[PaymentResponseDTO]:
        try:
            # Step 1: Load with locks
            invoice = await self.invoice_repo.get_by_id(command.invoice_id, for_update=True)
            if invoice is None or invoice.is_deleted:
                return Return.err(
                    Error(code="INVOICE_NOT_FOUND", message=f"Invoice {command.invoice_id} not found")
                )
            if not invoice.is_payable():
                return Return.err(
                    Error(
                        code="INVOICE_NOT_PAYABLE",
                        message=f"Invoice {invoice.number} is {invoice.status.value} with balance {invoice.balance}",
                    )
                )

            client = await self.client_repo.get_by_id(invoice.client_id, for_update=True)

            # Step 2: Payment and link
            applied = min(command.amount, invoice.balance)
            payment = Payment(
                company_id=invoice.company_id,
                client_id=invoice.client_id,
                number=await self.payment_repo.generate_number(invoice.company_id),
                amount=command.amount,
                applied=applied,
                status=PaymentStatus.COMPLETED,
                type=command.payment_type,
                currency=invoice.currency,
                transaction_reference=command.transaction_reference,
            )
            payment = await self.payment_repo.create(payment)
            await self.payment_repo.create_paymentable(
                Paymentable(
                    payment_id=payment.id,
                    paymentable_type=PaymentableType.INVOICE,
                    paymentable_id=invoice.id,
                    amount=applied,
                )
            )

            # Step 3: Ledger
            entries = await self.ledger.apply_payment(
                invoice, client, applied, f"Payment {payment.number} applied to Invoice {invoice.number}"
            )
            if command.amount > applied:
                entries.append(
                    await self.ledger.record_unapplied(
                        client,
                        payment.id,
                        command.amount - applied,
                        f"Unapplied amount of Payment {payment.number}",
                    )
                )

            invoice = await self.invoice_repo.update(invoice)
            await self.client_repo.update(client)

            # Step 4: Commit and notify
            await self.uow.commit()

            logger.info(
                f"Payment {payment.number} of {payment.amount} recorded for invoice {invoice.number} "
                f"(applied={applied}, invoice balance={invoice.balance})"
            )
            await self._publish(BillingEventType.PAYMENT_CREATED, invoice, payment)
            if invoice.status == InvoiceStatus.PAID:
                await self._publish(BillingEventType.INVOICE_PAID, invoice, payment)

            return Return.ok(PaymentResponseDTO.from_payment(payment, entries))

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RECORD_PAYMENT_FAILED",
                    message="Failed to record payment",
                    reason=str(e),
                )
            )

    async def _publish(self, event_type: BillingEventType, invoice, payment) -> None:
        if self.notification_service is None:
            return
        await self.notification_service.publish(
            BillingEvent(
                event_type=event_type,
                client_id=invoice.client_id,
                invoice_id=invoice.id,
                payment_id=payment.id,
                payload={"amount": str(payment.amount), "invoice_balance": str(invoice.balance)},
            )
        )
