"""RefundPayment Use Case

Refunds a payment, reopening the invoice balances it had settled.
"""

import logging
from decimal import Decimal
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.exceptions import BillingError
from src.domain.ledger_entry import LedgerActivity
from src.domain.payment import PaymentStatus, PaymentType
from src.domain.paymentable import PaymentableType
from .dtos import PaymentResponseDTO, RefundPaymentCommandDTO

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class RefundPayment:
    """
    Use Case: Refund a payment

    Business Rules:
    1. Refunds never exceed amount - refunded
    2. Invoice links are refunded first, in link order; what remains comes
       out of the unapplied amount
    3. Refunded invoice amounts return to the invoice and client balances
    4. Credit funded payments are not refundable; the credits stay applied
    """

    def __init__(
        self,
        uow: UnitOfWork,
        client_repo: ClientRepository,
        invoice_repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        ledger: BalanceLedger,
    ):
        self.uow = uow
        self.client_repo = client_repo
        self.invoice_repo = invoice_repo
        self.payment_repo = payment_repo
        self.ledger = ledger

    async def execute(self, command: RefundPaymentCommandDTO) -> Result[PaymentResponseDTO]:
        try:
            payment = await self.payment_repo.get_by_id(command.payment_id, for_update=True)
            if payment is None or payment.is_deleted:
                return Return.err(
                    Error(code="PAYMENT_NOT_FOUND", message=f"Payment {command.payment_id} not found")
                )
            if payment.type == PaymentType.CREDIT:
                return Return.err(
                    Error(
                        code="CREDIT_PAYMENT_NOT_REFUNDABLE",
                        message=f"Payment {payment.number} was funded by credits",
                    )
                )
            if payment.status in (PaymentStatus.FAILED, PaymentStatus.CANCELLED):
                return Return.err(
                    Error(
                        code="PAYMENT_NOT_REFUNDABLE",
                        message=f"Payment {payment.number} is {payment.status.value}",
                    )
                )

            refundable = payment.amount - payment.refunded
            amount = command.amount if command.amount is not None else refundable
            if amount <= 0 or amount > refundable:
                return Return.err(
                    Error(
                        code="REFUND_EXCEEDS_PAYMENT",
                        message=f"Cannot refund {amount}; {refundable} is refundable",
                    )
                )

            client = await self.client_repo.get_by_id(payment.client_id, for_update=True)
            note = f"Refund of Payment {payment.number}"

            entries = []
            remaining = amount
            for link in await self.payment_repo.list_paymentables(payment.id):
                if remaining <= 0:
                    break
                if link.paymentable_type != PaymentableType.INVOICE:
                    continue
                portion = min(remaining, link.amount - link.refunded)
                if portion <= 0:
                    continue

                invoice = await self.invoice_repo.get_by_id(link.paymentable_id, for_update=True)
                entries.extend(await self.ledger.refund_payment(invoice, client, portion, note))
                await self.invoice_repo.update(invoice)

                link.refunded += portion
                await self.payment_repo.update_paymentable(link)
                payment.applied -= portion
                remaining -= portion

            if remaining > 0:
                entries.append(
                    await self.ledger.record_unapplied(
                        client, payment.id, -remaining, note, LedgerActivity.REFUND
                    )
                )

            payment.refunded += amount
            payment.set_refund_status()
            payment = await self.payment_repo.update(payment)
            await self.client_repo.update(client)
            await self.uow.commit()

            logger.info(f"Refunded {amount} of payment {payment.number} (status={payment.status.value})")
            return Return.ok(PaymentResponseDTO.from_payment(payment, entries))

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="REFUND_PAYMENT_FAILED",
                    message="Failed to refund payment",
                    reason=str(e),
                )
            )
