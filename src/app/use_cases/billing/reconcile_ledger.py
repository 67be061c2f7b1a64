"""ReconcileLedger Use Case

Recomputes client balance figures from invoices, payments and credits,
compares them with the stored values and the ledger, and optionally writes
corrective entries.
"""

import logging
import time
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.services.notification_service import BillingEvent, BillingEventType, NotificationService
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.credit_repository import CreditRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.client import Client
from src.domain.client_contact import ClientContact
from src.domain.invoice import BALANCE_STATUSES, InvoiceStatus
from src.domain.invoice_invitation import InvoiceInvitation
from src.domain.ledger_entry import LedgerStream
from src.domain.payment import PAID_STATUSES
from .dtos import DiscrepancyDTO, DiscrepancyKind, ReconcileCommandDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ReconcileLedger:
    """
    Use Case: Reconcile client balances against their sources

    Checks per client:
    1. invoice_company_mismatch: invoice company differs from the client's
    2. client_balance_mismatch: balance != sum of sent/partial invoice balances
    3. ledger_balance_mismatch: latest balance entry snapshot != balance
    4. paid_to_date_mismatch: paid_to_date != payments net of refunds,
       minus credits issued against invoices
    5. missing_contact: client has no contact
    6. missing_invitation: sent invoice has no invitation

    Differences below the tolerance are ignored. Without fix mode nothing
    is written. With fix mode every finding is corrected (balances through
    corrective ledger entries) and committed at once, so an immediate
    second run reports nothing.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        client_repo: ClientRepository,
        invoice_repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        credit_repo: CreditRepository,
        ledger_repo: LedgerEntryRepository,
        ledger: BalanceLedger,
        tolerance: Decimal = Decimal("0.01"),
        notification_service: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.client_repo = client_repo
        self.invoice_repo = invoice_repo
        self.payment_repo = payment_repo
        self.credit_repo = credit_repo
        self.ledger_repo = ledger_repo
        self.ledger = ledger
        self.tolerance = Decimal(str(tolerance))
        self.notification_service = notification_service

    async def execute(self, command: ReconcileCommandDTO) -> Result[ReconciliationResultDTO]:
        """
        Execute ledger reconciliation

        Args:
            command: ReconcileCommandDTO with optional client scope and fix flag

        Returns:
            Result[ReconciliationResultDTO]: Reconciliation report
        """
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            if command.client_id is not None:
                client_ids = [command.client_id]
            else:
                client_ids = await self.client_repo.list_ids()

            logger.info(
                f"Starting ledger reconciliation of {len(client_ids)} clients (fix={command.fix})"
            )

            discrepancies: List[DiscrepancyDTO] = []
            for client_id in client_ids:
                client = await self.client_repo.get_by_id(client_id, for_update=command.fix)
                if client is None:
                    return Return.err(
                        Error(code="CLIENT_NOT_FOUND", message=f"Client {client_id} not found")
                    )
                discrepancies.extend(await self.reconcile(client, fix=command.fix))

            if command.fix:
                await self.uow.commit()

            corrected = sum(1 for d in discrepancies if d.corrected)
            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                clients_checked=len(client_ids),
                discrepancies_found=len(discrepancies),
                corrected=corrected,
                uncorrected=len(discrepancies) - corrected,
                fix_mode=command.fix,
                summary=dict(Counter(d.kind.value for d in discrepancies)),
                discrepancies=discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"({corrected} corrected) across {len(client_ids)} clients in {execution_time_ms}ms"
                )
                await self._publish(response)
            else:
                logger.info(
                    f"Reconciliation complete. All {len(client_ids)} clients balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile ledger",
                    reason=str(e),
                )
            )

    async def reconcile(self, client: Client, fix: bool = False) -> List[DiscrepancyDTO]:
        """Run every check against one client; corrections are flushed but not committed"""
        found: List[DiscrepancyDTO] = []
        invoices = await self.invoice_repo.list_by_client(client.id)

        for invoice in invoices:
            if invoice.company_id != client.company_id:
                discrepancy = DiscrepancyDTO(
                    client_id=client.id,
                    kind=DiscrepancyKind.INVOICE_COMPANY_MISMATCH,
                    entity_id=invoice.id,
                    message=(
                        f"Invoice {invoice.number} belongs to company {invoice.company_id}, "
                        f"client to company {client.company_id}"
                    ),
                )
                if fix:
                    invoice.company_id = client.company_id
                    await self.invoice_repo.update(invoice)
                    discrepancy.corrected = True
                found.append(discrepancy)

        expected_balance = sum(
            (invoice.balance for invoice in invoices if invoice.status in BALANCE_STATUSES), ZERO
        )
        if self._differs(expected_balance, client.balance):
            found.append(
                await self._balance_discrepancy(
                    client,
                    DiscrepancyKind.CLIENT_BALANCE_MISMATCH,
                    LedgerStream.BALANCE,
                    expected_balance,
                    client.balance,
                    f"Client balance {client.balance} differs from open invoices {expected_balance}",
                    fix,
                )
            )

        latest = await self.ledger_repo.get_latest(client.id, LedgerStream.BALANCE)
        snapshot = latest.balance if latest is not None else ZERO
        if self._differs(client.balance, snapshot):
            found.append(
                await self._balance_discrepancy(
                    client,
                    DiscrepancyKind.LEDGER_BALANCE_MISMATCH,
                    LedgerStream.BALANCE,
                    client.balance,
                    snapshot,
                    f"Latest ledger balance {snapshot} differs from client balance {client.balance}",
                    fix,
                )
            )

        expected_paid = await self._expected_paid_to_date(client.id)
        if self._differs(expected_paid, client.paid_to_date):
            found.append(
                await self._balance_discrepancy(
                    client,
                    DiscrepancyKind.PAID_TO_DATE_MISMATCH,
                    LedgerStream.PAID_TO_DATE,
                    expected_paid,
                    client.paid_to_date,
                    f"Client paid_to_date {client.paid_to_date} differs from payments {expected_paid}",
                    fix,
                )
            )

        contacts = await self.client_repo.list_contacts(client.id)
        if not contacts:
            discrepancy = DiscrepancyDTO(
                client_id=client.id,
                kind=DiscrepancyKind.MISSING_CONTACT,
                message=f"Client {client.id} has no contact",
            )
            if fix:
                contact = await self.client_repo.create_contact(
                    ClientContact(client_id=client.id, company_id=client.company_id, is_primary=True)
                )
                contacts = [contact]
                discrepancy.corrected = True
            found.append(discrepancy)

        primary = next((c for c in contacts if c.is_primary), contacts[0] if contacts else None)
        for invoice in invoices:
            if invoice.status == InvoiceStatus.DRAFT:
                continue
            if await self.invoice_repo.list_invitations(invoice.id):
                continue
            discrepancy = DiscrepancyDTO(
                client_id=client.id,
                kind=DiscrepancyKind.MISSING_INVITATION,
                entity_id=invoice.id,
                message=f"Invoice {invoice.number} has no invitation",
            )
            if fix and primary is not None:
                await self.invoice_repo.create_invitation(
                    InvoiceInvitation(invoice_id=invoice.id, client_contact_id=primary.id)
                )
                discrepancy.corrected = True
            found.append(discrepancy)

        if fix and any(d.corrected for d in found):
            await self.client_repo.update(client)

        for d in found:
            logger.warning(
                f"Discrepancy for client {client.id}: {d.kind.value} "
                f"expected={d.expected}, actual={d.actual}, corrected={d.corrected}"
            )

        return found

    async def _balance_discrepancy(
        self,
        client: Client,
        kind: DiscrepancyKind,
        stream: LedgerStream,
        expected: Decimal,
        actual: Decimal,
        message: str,
        fix: bool,
    ) -> DiscrepancyDTO:
        discrepancy = DiscrepancyDTO(
            client_id=client.id,
            kind=kind,
            expected=expected,
            actual=actual,
            message=message,
        )
        if fix:
            await self.ledger.correct(client, stream, expected, f"Reconciliation: {kind.value}")
            discrepancy.corrected = True
        return discrepancy

    async def _expected_paid_to_date(self, client_id: int) -> Decimal:
        payments = await self.payment_repo.list_by_client(client_id)
        credits = await self.credit_repo.list_by_client(client_id)

        paid = sum(
            (p.amount - p.refunded for p in payments if p.status in PAID_STATUSES and not p.is_deleted),
            ZERO,
        )
        reversed_by_credits = sum(
            (c.amount for c in credits if c.invoice_id is not None and not c.is_deleted), ZERO
        )
        return paid - reversed_by_credits

    def _differs(self, expected: Decimal, actual: Decimal) -> bool:
        return abs((expected or ZERO) - (actual or ZERO)) >= self.tolerance

    async def _publish(self, response: ReconciliationResultDTO) -> None:
        if self.notification_service is None or response.uncorrected == 0:
            return
        await self.notification_service.publish(
            BillingEvent(
                event_type=BillingEventType.LEDGER_DISCREPANCY,
                payload={"summary": response.summary, "uncorrected": response.uncorrected},
            )
        )
