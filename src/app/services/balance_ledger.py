"""Balance Ledger Service

Single choke point for every change of an invoice, credit or client balance.
Each operation mutates the loaded entities in place and appends one
LedgerEntry per client figure it touched. Nothing is committed here: the
calling use case owns the unit of work and commits once, so a balance change
and its ledger entry are persisted together or not at all.
"""

import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.credit_repository import CreditRepository
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.client import Client
from src.domain.credit import Credit
from src.domain.exceptions import EntityNotFound, InvoiceValidationError
from src.domain.invoice import Invoice, InvoiceStatus, PAYABLE_STATUSES
from src.domain.ledger_entry import LedgerActivity, LedgerEntry, LedgerStream

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Invoices in these statuses are part of the client balance figures
CLIENT_BALANCE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.PARTIAL, InvoiceStatus.PAID)


class EntityKind(str, Enum):
    INVOICE = "invoice"
    CREDIT = "credit"
    CLIENT = "client"


class EntityRef(BaseModel):
    """Reference to the entity whose balance an adjustment targets"""

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    id: int


class BalanceLedger:
    """
    Applies balance adjustments and records them in the ledger

    Business Rules:
    1. Every balance change appends a ledger entry carrying the signed
       delta and the resulting value of the client figure
    2. Draft and cancelled invoices do not affect client figures
    3. Entries are never edited; corrections are new entries
    4. Callers load entities with for_update=True before adjusting them
    """

    def __init__(
        self,
        ledger_repo: LedgerEntryRepository,
        client_repo: Optional[ClientRepository] = None,
        invoice_repo: Optional[InvoiceRepository] = None,
        credit_repo: Optional[CreditRepository] = None,
    ):
        self.ledger_repo = ledger_repo
        self.client_repo = client_repo
        self.invoice_repo = invoice_repo
        self.credit_repo = credit_repo

    async def apply_adjustment(self, ref: EntityRef, delta: Decimal, note: str) -> LedgerEntry:
        """
        Adjust the balance of the referenced entity by `delta`

        Loads and locks the entity and its client, applies the delta and
        returns the appended ledger entry.

        Raises:
            EntityNotFound: The entity or its client does not exist
            InvoiceValidationError: The invoice is a draft or cancelled, or
                the reference is a client; client balances only follow invoices
        """
        if ref.kind == EntityKind.INVOICE:
            invoice = await self.invoice_repo.get_by_id(ref.id, for_update=True)
            if invoice is None or invoice.is_deleted:
                raise EntityNotFound("invoice", ref.id)
            if invoice.status not in CLIENT_BALANCE_STATUSES:
                raise InvoiceValidationError(
                    f"Invoice {invoice.number} is {invoice.status.value} and cannot be adjusted"
                )
            client = await self._load_client(invoice.client_id)
            entry = await self.adjust_invoice_balance(
                invoice, client, delta, note, LedgerActivity.MANUAL
            )
            invoice.set_calculated_status()
            await self.invoice_repo.update(invoice)
        elif ref.kind == EntityKind.CREDIT:
            credit = await self.credit_repo.get_by_id(ref.id, for_update=True)
            if credit is None or credit.is_deleted:
                raise EntityNotFound("credit", ref.id)
            client = await self._load_client(credit.client_id)
            credit.balance += delta
            credit.set_calculated_status()
            entry = await self._append(
                client, LedgerStream.CREDIT_BALANCE, LedgerActivity.MANUAL, delta, "credit", credit.id, note
            )
            await self.credit_repo.update(credit)
        else:
            raise InvoiceValidationError(
                f"Client {ref.id} balance follows its invoices; adjust an invoice or credit instead"
            )

        await self.client_repo.update(client)
        return entry

    async def adjust_invoice_balance(
        self,
        invoice: Invoice,
        client: Client,
        delta: Decimal,
        note: str,
        activity: LedgerActivity = LedgerActivity.INVOICE,
    ) -> Optional[LedgerEntry]:
        """Move an invoice balance; the client balance follows unless the invoice is a draft"""
        invoice.balance += delta
        if self._affects_client(invoice):
            return await self._append(
                client, LedgerStream.BALANCE, activity, delta, "invoice", invoice.id, note
            )
        return None

    async def apply_payment(
        self,
        invoice: Invoice,
        client: Client,
        amount: Decimal,
        note: str,
        activity: LedgerActivity = LedgerActivity.PAYMENT,
    ) -> List[LedgerEntry]:
        """Settle `amount` of an invoice; the partial target shrinks with it"""
        invoice.balance -= amount
        invoice.paid_to_date += amount
        if invoice.partial and invoice.partial > 0:
            invoice.partial = max(ZERO, invoice.partial - amount)

        entries = [
            await self._append(client, LedgerStream.BALANCE, activity, -amount, "invoice", invoice.id, note),
            await self._append(client, LedgerStream.PAID_TO_DATE, activity, amount, "invoice", invoice.id, note),
        ]
        invoice.set_calculated_status()
        return entries

    async def apply_credit(self, credit: Credit, client: Client, amount: Decimal, note: str) -> LedgerEntry:
        """Consume `amount` of a credit balance"""
        credit.balance -= amount
        credit.paid_to_date += amount
        credit.set_calculated_status()
        return await self._append(
            client, LedgerStream.CREDIT_BALANCE, LedgerActivity.CREDIT, -amount, "credit", credit.id, note
        )

    async def issue_credit(self, credit: Credit, client: Client, note: str) -> List[LedgerEntry]:
        """
        Make a new credit available to the client

        A credit issued against an existing invoice reverses money already
        paid, so it also lowers the client's paid_to_date.
        """
        entries = [
            await self._append(
                client, LedgerStream.CREDIT_BALANCE, LedgerActivity.CREDIT, credit.balance, "credit", credit.id, note
            )
        ]
        if credit.invoice_id is not None:
            entries.append(
                await self._append(
                    client, LedgerStream.PAID_TO_DATE, LedgerActivity.CREDIT, -credit.amount, "credit", credit.id, note
                )
            )
        return entries

    async def record_unapplied(
        self,
        client: Client,
        payment_id: Optional[int],
        amount: Decimal,
        note: str,
        activity: LedgerActivity = LedgerActivity.PAYMENT,
    ) -> LedgerEntry:
        """Payment money not applied to any invoice (overpayment or its refund)"""
        return await self._append(
            client, LedgerStream.PAID_TO_DATE, activity, amount, "payment", payment_id, note
        )

    async def refund_payment(
        self, invoice: Invoice, client: Client, amount: Decimal, note: str
    ) -> List[LedgerEntry]:
        """Reverse `amount` of a payment previously applied to an invoice"""
        invoice.balance += amount
        invoice.paid_to_date -= amount

        entries = []
        if self._affects_client(invoice):
            entries.append(
                await self._append(
                    client, LedgerStream.BALANCE, LedgerActivity.REFUND, amount, "invoice", invoice.id, note
                )
            )
        entries.append(
            await self._append(
                client, LedgerStream.PAID_TO_DATE, LedgerActivity.REFUND, -amount, "invoice", invoice.id, note
            )
        )
        invoice.set_calculated_status()
        return entries

    async def mark_sent(self, invoice: Invoice, client: Client, note: str) -> LedgerEntry:
        """Move a draft into the client balance"""
        if invoice.status != InvoiceStatus.DRAFT:
            raise InvoiceValidationError(f"Invoice {invoice.number} is already {invoice.status.value}")

        invoice.status = InvoiceStatus.SENT
        entry = await self._append(
            client, LedgerStream.BALANCE, LedgerActivity.INVOICE, invoice.balance, "invoice", invoice.id, note
        )
        invoice.set_calculated_status()
        return entry

    async def cancel(self, invoice: Invoice, client: Client, note: str) -> LedgerEntry:
        """Take an open invoice out of the client balance"""
        if invoice.status not in PAYABLE_STATUSES:
            raise InvoiceValidationError(
                f"Invoice {invoice.number} is {invoice.status.value} and cannot be cancelled"
            )

        delta = -invoice.balance
        invoice.balance = ZERO
        entry = await self._append(
            client, LedgerStream.BALANCE, LedgerActivity.INVOICE, delta, "invoice", invoice.id, note
        )
        invoice.status = InvoiceStatus.CANCELLED
        return entry

    async def correct(
        self, client: Client, stream: LedgerStream, expected: Decimal, note: str
    ) -> LedgerEntry:
        """Set a client figure to its recomputed value through a corrective entry"""
        actual = getattr(client, stream.value) or ZERO
        logger.info(
            f"Correcting {stream.value} of client {client.id}: {actual} -> {expected}"
        )
        return await self._append(
            client, stream, LedgerActivity.CORRECTION, expected - actual, "client", client.id, note
        )

    async def _load_client(self, client_id: int) -> Client:
        client = await self.client_repo.get_by_id(client_id, for_update=True)
        if client is None:
            raise EntityNotFound("client", client_id)
        return client

    @staticmethod
    def _affects_client(invoice: Invoice) -> bool:
        return not invoice.is_deleted and invoice.status in CLIENT_BALANCE_STATUSES

    async def _append(
        self,
        client: Client,
        stream: LedgerStream,
        activity: LedgerActivity,
        delta: Decimal,
        entity_type: Optional[str],
        entity_id: Optional[int],
        note: str,
    ) -> LedgerEntry:
        value = (getattr(client, stream.value) or ZERO) + delta
        setattr(client, stream.value, value)
        client.updated_at = datetime.utcnow()

        entry = LedgerEntry(
            client_id=client.id,
            company_id=client.company_id,
            stream=stream,
            activity=activity,
            entity_type=entity_type,
            entity_id=entity_id,
            adjustment=delta,
            balance=value,
            notes=note,
        )
        return await self.ledger_repo.append(entry)
