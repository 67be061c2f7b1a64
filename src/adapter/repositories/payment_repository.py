"""SQLAlchemy Payment Repository Implementation

Persists payments and the paymentable rows linking them to the invoices and
credits they were applied to.
"""

from typing import List, Optional
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.payment import Payment
from src.domain.paymentable import Paymentable


class SqlAlchemyPaymentRepository(PaymentRepository):
    """
    SQLAlchemy implementation of PaymentRepository
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, payment: Payment) -> Payment:
        """
        Create a new payment

        Args:
            payment: Payment entity to persist

        Returns:
            Created Payment with generated ID
        """
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def get_by_id(self, payment_id: int, for_update: bool = False) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.id == payment_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, payment: Payment) -> Payment:
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def list_by_client(self, client_id: int) -> List[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.client_id == client_id)
            .where(Payment.is_deleted == False)  # noqa: E712
            .order_by(Payment.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_paymentable(self, paymentable: Paymentable) -> Paymentable:
        self.session.add(paymentable)
        await self.session.flush()
        await self.session.refresh(paymentable)
        return paymentable

    async def list_paymentables(self, payment_id: int) -> List[Paymentable]:
        stmt = (
            select(Paymentable)
            .where(Paymentable.payment_id == payment_id)
            .order_by(Paymentable.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_paymentable(self, paymentable: Paymentable) -> Paymentable:
        self.session.add(paymentable)
        await self.session.flush()
        await self.session.refresh(paymentable)
        return paymentable

    async def generate_number(self, company_id: int) -> str:
        """
        Generate the next payment number of a company

        Format: PAY-NNNNNN (e.g., PAY-000001)
        """
        prefix = "PAY-"
        stmt = (
            select(func.max(Payment.number))
            .where(Payment.company_id == company_id)
            .where(Payment.number.like(f"{prefix}%"))
        )
        result = await self.session.execute(stmt)
        max_number = result.scalar_one_or_none()

        if max_number:
            sequence = int(max_number.split("-")[-1]) + 1
        else:
            sequence = 1

        return f"{prefix}{sequence:06d}"
