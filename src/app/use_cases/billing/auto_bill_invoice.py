"""AutoBillInvoice Use Case

Collects an open invoice automatically: client credits first, then a stored
payment method for whatever remains.

State machine per invoice:
    Payable -> CreditsApplied(partial|full) -> GatewayCharge(success|failed) -> Settled | Failed
"""

import asyncio
import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from pydantic import BaseModel, ConfigDict
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.services.notification_service import BillingEvent, BillingEventType, NotificationService
from src.app.services.payment_gateway import GatewayRegistry, GatewayResponse, PaymentGateway
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.company_repository import CompanyRepository
from src.app.repositories.credit_repository import CreditRepository
from src.app.repositories.gateway_token_repository import GatewayTokenRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.client import Client
from src.domain.client_gateway_token import ClientGatewayToken
from src.domain.company_gateway import CompanyGateway
from src.domain.credit import Credit
from src.domain.exceptions import (
    BillingError,
    GatewayDeclined,
    GatewayError,
    GatewayTransportError,
    NoPaymentMethod,
)
from src.domain.invoice import Invoice, InvoiceStatus, PAYABLE_STATUSES
from src.domain.ledger_entry import LedgerActivity
from src.domain.line_item import LineItem, LineItemType
from src.domain.payment import Payment, PaymentStatus, PaymentType
from src.domain.paymentable import Paymentable, PaymentableType
from src.domain.settings import resolve_setting
from .dtos import AutoBillCommandDTO, AutoBillOutcome, AutoBillResultDTO, InvoiceResponseDTO
from .support import load_setting_levels

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class CreditConsumption(BaseModel):
    """Amount taken from one credit"""

    model_config = ConfigDict(frozen=True)

    credit_id: int
    amount: Decimal


def plan_credit_application(credits: Sequence[Credit], target: Decimal) -> List[CreditConsumption]:
    """
    Plan which credits cover `target`

    Credits are consumed oldest first and consumption stops as soon as the
    target is covered. A credit whose balance equals the remaining amount
    is consumed completely and leaves nothing remaining.
    """
    plan: List[CreditConsumption] = []
    remaining = target

    for credit in sorted(credits, key=lambda c: (c.created_at, c.id)):
        if remaining <= 0:
            break
        if credit.is_deleted or credit.balance <= 0:
            continue
        amount = min(credit.balance, remaining)
        plan.append(CreditConsumption(credit_id=credit.id, amount=amount))
        remaining -= amount

    return plan


def select_gateway_token(
    candidates: Sequence[Tuple[ClientGatewayToken, CompanyGateway]], amount: Decimal
) -> Optional[Tuple[ClientGatewayToken, CompanyGateway]]:
    """First usable token, default token first, whose gateway limits accept `amount`"""
    ordered = sorted(candidates, key=lambda pair: (not pair[0].is_default, pair[0].id or 0))
    for token, gateway in ordered:
        if token.is_deleted or gateway.is_deleted:
            continue
        if gateway.limits().accepts(amount):
            return token, gateway
    return None


class AutoBillInvoice:
    """
    Use Case: Automatically collect an invoice

    Business Rules:
    1. Only sent/partial invoices with a positive balance are collected;
       a payable invoice with a zero balance is marked paid
    2. Credits (unless use_credits_payment is off) cover the partial
       target if set, else the balance; if they cover it no gateway is called
    3. The remainder is charged to the first eligible stored payment
       method; none eligible fails with no_payment_method_specified
       without counting as a try
    4. A gateway fee is added to the invoice before charging and removed
       again if the charge fails
    5. Every failed charge counts a try; reaching max_tries disables auto
       billing for the invoice and resets the counter. Success resets it too
    6. The only cancellation point is before the gateway charge

    Flow:
    1. Load and lock invoice and client
    2. Apply credits, commit
    3. Select token, add fee, commit
    4. Charge the gateway (bounded by gateway_timeout)
    5. On success record the payment; on failure unwind the fee and count the try
    """

    def __init__(
        self,
        uow: UnitOfWork,
        client_repo: ClientRepository,
        company_repo: CompanyRepository,
        invoice_repo: InvoiceRepository,
        credit_repo: CreditRepository,
        payment_repo: PaymentRepository,
        token_repo: GatewayTokenRepository,
        ledger: BalanceLedger,
        gateways: GatewayRegistry,
        notification_service: Optional[NotificationService] = None,
        max_tries: int = 3,
        gateway_timeout: float = 30.0,
    ):
        self.uow = uow
        self.client_repo = client_repo
        self.company_repo = company_repo
        self.invoice_repo = invoice_repo
        self.credit_repo = credit_repo
        self.payment_repo = payment_repo
        self.token_repo = token_repo
        self.ledger = ledger
        self.gateways = gateways
        self.notification_service = notification_service
        self.max_tries = max_tries
        self.gateway_timeout = gateway_timeout

    async def execute(
        self, command: AutoBillCommandDTO, cancel_event: Optional[asyncio.Event] = None
    ) -> Result[AutoBillResultDTO]:
        """
        Execute auto billing of one invoice

        Args:
            command: AutoBillCommandDTO with the invoice ID
            cancel_event: Optional event; when set before the gateway step the
                attempt stops after credit application

        Returns:
            Result[AutoBillResultDTO]: How the invoice was settled, or error
        """
        try:
            # Step 1: Load with locks
            invoice = await self.invoice_repo.get_by_id(command.invoice_id, for_update=True)
            if invoice is None or invoice.is_deleted:
                return Return.err(
                    Error(code="INVOICE_NOT_FOUND", message=f"Invoice {command.invoice_id} not found")
                )

            if invoice.status in PAYABLE_STATUSES and invoice.balance == 0:
                invoice.status = InvoiceStatus.PAID
                invoice = await self.invoice_repo.update(invoice)
                await self.uow.commit()
                return Return.ok(self._result(invoice, AutoBillOutcome.ALREADY_PAID))

            if not invoice.is_payable():
                return Return.err(
                    Error(
                        code="INVOICE_NOT_PAYABLE",
                        message=f"Invoice {invoice.number} is {invoice.status.value} with balance {invoice.balance}",
                    )
                )

            client = await self.client_repo.get_by_id(invoice.client_id, for_update=True)
            group, company = await load_setting_levels(self.company_repo, client)

            # Step 2: Credits
            credits_applied = ZERO
            payment_ids: List[int] = []
            if resolve_setting("use_credits_payment", client, group, company) != "off":
                target = invoice.payable_amount()
                credit_payment = await self._apply_credits(invoice, client, target)
                if credit_payment is not None:
                    credits_applied = credit_payment.amount
                    payment_ids.append(credit_payment.id)
                    await self.uow.commit()
                    await self._publish(BillingEventType.PAYMENT_CREATED, invoice, credit_payment)

                    if credits_applied >= target:
                        if invoice.status == InvoiceStatus.PAID:
                            await self._publish(BillingEventType.INVOICE_PAID, invoice, credit_payment)
                        logger.info(f"Invoice {invoice.number} settled by credits ({credits_applied})")
                        return Return.ok(
                            self._result(
                                invoice,
                                AutoBillOutcome.SETTLED_BY_CREDITS,
                                credits_applied=credits_applied,
                                payment_ids=payment_ids,
                            )
                        )

            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Auto billing of invoice {invoice.number} cancelled before gateway charge")
                return Return.ok(
                    self._result(
                        invoice,
                        AutoBillOutcome.CANCELLED,
                        credits_applied=credits_applied,
                        payment_ids=payment_ids,
                    )
                )

            # Step 3: Token and fee
            amount = invoice.payable_amount()
            candidates = [
                (token, gateway)
                for token, gateway in await self.token_repo.list_for_client(client.id)
                if gateway.gateway_key in self.gateways
            ]
            selected = select_gateway_token(candidates, amount)
            if selected is None:
                raise NoPaymentMethod(
                    f"No payment method can charge {amount} for invoice {invoice.number}",
                    reason=f"{len(candidates)} stored payment methods checked",
                )
            token, company_gateway = selected
            gateway = self.gateways.get(company_gateway.gateway_key)

            fee = await self._add_gateway_fee(invoice, client, company_gateway, amount)
            charge_amount = amount + fee
            invoice = await self.invoice_repo.update(invoice)
            await self.client_repo.update(client)
            await self.uow.commit()

            # Step 4: Charge
            try:
                response = await self._charge(gateway, company_gateway, token, charge_amount, invoice)
            except GatewayError as e:
                await self._handle_failure(invoice, client, company_gateway, fee, e)
                return Return.err(Error(code=e.code, message=e.message, reason=e.reason))

            # Step 5: Record payment
            payment = await self._record_gateway_payment(
                invoice, client, company_gateway, charge_amount, response
            )
            payment_ids.append(payment.id)
            invoice.auto_bill_tries = 0
            invoice = await self.invoice_repo.update(invoice)
            await self.client_repo.update(client)
            await self.uow.commit()

            logger.info(
                f"Charged {charge_amount} for invoice {invoice.number} via {company_gateway.gateway_key} "
                f"(ref={response.transaction_ref})"
            )
            await self._publish(BillingEventType.PAYMENT_CREATED, invoice, payment)
            if invoice.status == InvoiceStatus.PAID:
                await self._publish(BillingEventType.INVOICE_PAID, invoice, payment)

            return Return.ok(
                self._result(
                    invoice,
                    AutoBillOutcome.CHARGED,
                    credits_applied=credits_applied,
                    charged_amount=charge_amount,
                    gateway_fee=fee,
                    transaction_ref=response.transaction_ref,
                    payment_ids=payment_ids,
                )
            )

        except BillingError as e:
            await self.uow.rollback()
            logger.warning(f"Auto billing of invoice {command.invoice_id} failed: {e.code} {e.message}")
            return Return.err(Error(code=e.code, message=e.message, reason=e.reason))
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Auto billing of invoice {command.invoice_id} failed: {e}")
            return Return.err(
                Error(
                    code="AUTO_BILL_FAILED",
                    message="Failed to auto bill invoice",
                    reason=str(e),
                )
            )

    async def _apply_credits(self, invoice: Invoice, client: Client, target: Decimal) -> Optional[Payment]:
        credits = await self.credit_repo.list_available(client.id, for_update=True)
        plan = plan_credit_application(credits, target)
        if not plan:
            return None

        by_id = {credit.id: credit for credit in credits}
        total = sum((consumption.amount for consumption in plan), ZERO)

        payment = await self.payment_repo.create(
            Payment(
                company_id=invoice.company_id,
                client_id=client.id,
                number=await self.payment_repo.generate_number(invoice.company_id),
                amount=total,
                applied=total,
                status=PaymentStatus.COMPLETED,
                type=PaymentType.CREDIT,
                currency=invoice.currency,
            )
        )

        for consumption in plan:
            credit = by_id[consumption.credit_id]
            await self.ledger.apply_credit(
                credit, client, consumption.amount, f"Credit {credit.number} applied to Invoice {invoice.number}"
            )
            await self.credit_repo.update(credit)
            await self.payment_repo.create_paymentable(
                Paymentable(
                    payment_id=payment.id,
                    paymentable_type=PaymentableType.CREDIT,
                    paymentable_id=credit.id,
                    amount=consumption.amount,
                )
            )

        await self.payment_repo.create_paymentable(
            Paymentable(
                payment_id=payment.id,
                paymentable_type=PaymentableType.INVOICE,
                paymentable_id=invoice.id,
                amount=total,
            )
        )
        await self.ledger.apply_payment(
            invoice,
            client,
            total,
            f"Payment {payment.number} (credits) applied to Invoice {invoice.number}",
            LedgerActivity.CREDIT,
        )
        await self.invoice_repo.update(invoice)
        await self.client_repo.update(client)
        return payment

    async def _add_gateway_fee(
        self, invoice: Invoice, client: Client, company_gateway: CompanyGateway, amount: Decimal
    ) -> Decimal:
        """Add the gateway surcharge line; returns the increase of the invoice total"""
        fee = company_gateway.limits().fee_for(amount)
        if fee <= 0 or fee > amount:
            return ZERO

        invoice.add_line_item(
            LineItem(
                product_key="gateway_fee",
                notes=f"Gateway fee ({company_gateway.gateway_key})",
                quantity=Decimal("1"),
                cost=fee,
                type_id=LineItemType.GATEWAY_FEE,
            )
        )
        delta = invoice.recalculate()
        if invoice.partial > 0:
            invoice.partial += delta
        await self.ledger.adjust_invoice_balance(
            invoice, client, delta, f"Gateway fee added to Invoice {invoice.number}", LedgerActivity.GATEWAY_FEE
        )
        return delta

    async def _unwind_gateway_fee(self, invoice: Invoice, client: Client, fee: Decimal) -> None:
        if fee == 0:
            return
        invoice.remove_last_line_item(LineItemType.GATEWAY_FEE)
        delta = invoice.recalculate()
        if invoice.partial > 0:
            invoice.partial = max(ZERO, invoice.partial + delta)
        await self.ledger.adjust_invoice_balance(
            invoice, client, delta, f"Gateway fee removed from Invoice {invoice.number}", LedgerActivity.GATEWAY_FEE
        )

    async def _charge(
        self,
        gateway: PaymentGateway,
        company_gateway: CompanyGateway,
        token: ClientGatewayToken,
        amount: Decimal,
        invoice: Invoice,
    ) -> GatewayResponse:
        try:
            response = await asyncio.wait_for(
                gateway.charge(token.token, amount, invoice.currency, invoice.number),
                timeout=self.gateway_timeout,
            )
        except asyncio.TimeoutError:
            raise GatewayTransportError(
                f"Gateway {company_gateway.gateway_key} did not answer within {self.gateway_timeout}s",
                reason="timeout",
            )
        except GatewayError:
            raise
        except Exception as e:
            # anything else a gateway raises still counts as a failed attempt
            raise GatewayTransportError(
                f"Gateway {company_gateway.gateway_key} failed while charging invoice {invoice.number}",
                reason=str(e),
                raw_response=repr(e),
            )

        if not response.success:
            raise GatewayDeclined(
                f"Gateway {company_gateway.gateway_key} declined the charge for invoice {invoice.number}",
                reason=str(response.raw_response),
                raw_response=response.raw_response,
            )
        return response

    async def _handle_failure(
        self,
        invoice: Invoice,
        client: Client,
        company_gateway: CompanyGateway,
        fee: Decimal,
        error: GatewayError,
    ) -> None:
        if isinstance(error, GatewayTransportError):
            logger.error(
                f"Gateway {company_gateway.gateway_key} transport failure for invoice {invoice.number}: "
                f"{error.message} ({error.reason}) raw={error.raw_response!r}"
            )
        else:
            logger.warning(
                f"Gateway {company_gateway.gateway_key} declined invoice {invoice.number}: {error.message}"
            )

        await self._unwind_gateway_fee(invoice, client, fee)

        invoice.auto_bill_tries += 1
        if invoice.auto_bill_tries >= self.max_tries:
            logger.warning(
                f"Auto billing disabled for invoice {invoice.number} after {invoice.auto_bill_tries} failed attempts"
            )
            invoice.auto_bill_enabled = False
            invoice.auto_bill_tries = 0

        await self.invoice_repo.update(invoice)
        await self.client_repo.update(client)
        await self.uow.commit()

        if self.notification_service is None:
            return
        await self.notification_service.publish(
            BillingEvent(
                event_type=BillingEventType.PAYMENT_FAILED,
                client_id=invoice.client_id,
                invoice_id=invoice.id,
                payload={
                    "code": error.code,
                    "message": error.message,
                    "auto_bill_tries": invoice.auto_bill_tries,
                    "auto_bill_enabled": invoice.auto_bill_enabled,
                },
            )
        )
        await self.notification_service.publish(
            BillingEvent(
                event_type=BillingEventType.GATEWAY_RESPONSE_LOGGED,
                client_id=invoice.client_id,
                invoice_id=invoice.id,
                payload={
                    "gateway_key": company_gateway.gateway_key,
                    "reason": error.reason,
                    "raw_response": error.raw_response,
                },
            )
        )

    async def _record_gateway_payment(
        self,
        invoice: Invoice,
        client: Client,
        company_gateway: CompanyGateway,
        amount: Decimal,
        response: GatewayResponse,
    ) -> Payment:
        payment = await self.payment_repo.create(
            Payment(
                company_id=invoice.company_id,
                client_id=client.id,
                number=await self.payment_repo.generate_number(invoice.company_id),
                amount=amount,
                applied=amount,
                status=PaymentStatus.COMPLETED,
                type=PaymentType.CARD,
                currency=invoice.currency,
                gateway_key=company_gateway.gateway_key,
                transaction_reference=response.transaction_ref,
            )
        )
        await self.payment_repo.create_paymentable(
            Paymentable(
                payment_id=payment.id,
                paymentable_type=PaymentableType.INVOICE,
                paymentable_id=invoice.id,
                amount=amount,
            )
        )
        await self.ledger.apply_payment(
            invoice, client, amount, f"Payment {payment.number} applied to Invoice {invoice.number}"
        )
        return payment

    async def _publish(self, event_type: BillingEventType, invoice: Invoice, payment: Payment) -> None:
        if self.notification_service is None:
            return
        await self.notification_service.publish(
            BillingEvent(
                event_type=event_type,
                client_id=invoice.client_id,
                invoice_id=invoice.id,
                payment_id=payment.id,
                payload={"amount": str(payment.amount), "payment_type": payment.type.value},
            )
        )

    @staticmethod
    def _result(invoice: Invoice, outcome: AutoBillOutcome, **values) -> AutoBillResultDTO:
        return AutoBillResultDTO(
            invoice_id=invoice.id,
            outcome=outcome,
            invoice=InvoiceResponseDTO.from_invoice(invoice),
            **values,
        )
