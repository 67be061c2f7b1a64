"""SQLAlchemy Invoice Repository Implementation

Implements invoice persistence using SQLAlchemy async session.
"""

from typing import Optional, List
from datetime import date, datetime
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.invoice import Invoice, PAYABLE_STATUSES
from src.domain.invoice_invitation import InvoiceInvitation


class SqlAlchemyInvoiceRepository(InvoiceRepository):
    """
    SQLAlchemy implementation of InvoiceRepository

    Uses async session for database operations.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, invoice: Invoice) -> Invoice:
        """
        Create a new invoice

        Args:
            invoice: Invoice entity to persist

        Returns:
            Created Invoice with generated ID
        """
        self.session.add(invoice)
        await self.session.flush()
        await self.session.refresh(invoice)
        return invoice

    async def get_by_id(self, invoice_id: int, for_update: bool = False) -> Optional[Invoice]:
        """
        Retrieve invoice by ID

        Args:
            invoice_id: Invoice ID
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            Invoice if found, None otherwise
        """
        statement = select(Invoice).where(Invoice.id == invoice_id)

        if for_update:
            statement = statement.with_for_update()

        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def update(self, invoice: Invoice) -> Invoice:
        """
        Update an existing invoice

        Args:
            invoice: Invoice entity with updated values

        Returns:
            Updated Invoice
        """
        invoice.updated_at = datetime.utcnow()
        self.session.add(invoice)
        await self.session.flush()
        await self.session.refresh(invoice)
        return invoice

    async def list_by_client(self, client_id: int) -> List[Invoice]:
        statement = (
            select(Invoice)
            .where(Invoice.client_id == client_id)
            .where(Invoice.is_deleted == False)  # noqa: E712
            .order_by(Invoice.id)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def list_auto_bill_due(self, due_on: date, limit: int = 100) -> List[int]:
        statement = (
            select(Invoice.id)
            .where(Invoice.is_deleted == False)  # noqa: E712
            .where(Invoice.auto_bill_enabled == True)  # noqa: E712
            .where(Invoice.status.in_(PAYABLE_STATUSES))
            .where(Invoice.balance > 0)
            .where(Invoice.due_date <= due_on)
            .order_by(Invoice.due_date, Invoice.id)
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def generate_number(self, company_id: int) -> str:
        """
        Generate the next invoice number of a company

        Format: INV-NNNNNN (e.g., INV-000001)

        Returns:
            Unique invoice number string
        """
        prefix = "INV-"

        # Highest number issued by this company so far
        statement = (
            select(func.max(Invoice.number))
            .where(Invoice.company_id == company_id)
            .where(Invoice.number.like(f"{prefix}%"))
        )
        result = await self.session.execute(statement)
        max_number = result.scalar_one_or_none()

        if max_number:
            sequence = int(max_number.split("-")[-1]) + 1
        else:
            sequence = 1

        return f"{prefix}{sequence:06d}"

    async def list_invitations(self, invoice_id: int) -> List[InvoiceInvitation]:
        statement = (
            select(InvoiceInvitation)
            .where(InvoiceInvitation.invoice_id == invoice_id)
            .order_by(InvoiceInvitation.id)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def create_invitation(self, invitation: InvoiceInvitation) -> InvoiceInvitation:
        self.session.add(invitation)
        await self.session.flush()
        await self.session.refresh(invitation)
        return invitation
