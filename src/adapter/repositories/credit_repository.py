"""SQLAlchemy Credit Repository Implementation"""

from typing import List, Optional
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_repository import CreditRepository
from src.domain.credit import Credit, CreditStatus


class SqlAlchemyCreditRepository(CreditRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, credit: Credit) -> Credit:
        self.session.add(credit)
        await self.session.flush()
        await self.session.refresh(credit)
        return credit

    async def get_by_id(self, credit_id: int, for_update: bool = False) -> Optional[Credit]:
        stmt = select(Credit).where(Credit.id == credit_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(self, credit: Credit) -> Credit:
        self.session.add(credit)
        await self.session.flush()
        await self.session.refresh(credit)
        return credit

    async def list_available(self, client_id: int, for_update: bool = False) -> List[Credit]:
        """
        Credits that can still be applied, oldest first

        Args:
            client_id: Client ID
            for_update: If True, locks the rows with SELECT FOR UPDATE

        Returns:
            List of credits in consumption order
        """
        stmt = (
            select(Credit)
            .where(Credit.client_id == client_id)
            .where(Credit.is_deleted == False)  # noqa: E712
            .where(Credit.status != CreditStatus.DRAFT)
            .where(Credit.balance > 0)
            .order_by(Credit.created_at, Credit.id)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_client(self, client_id: int) -> List[Credit]:
        stmt = (
            select(Credit)
            .where(Credit.client_id == client_id)
            .where(Credit.is_deleted == False)  # noqa: E712
            .order_by(Credit.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def generate_number(self, company_id: int) -> str:
        """Next credit number of a company (CR-NNNNNN)"""
        prefix = "CR-"
        stmt = (
            select(func.max(Credit.number))
            .where(Credit.company_id == company_id)
            .where(Credit.number.like(f"{prefix}%"))
        )
        result = await self.session.execute(stmt)
        max_number = result.scalar_one_or_none()

        sequence = int(max_number.split("-")[-1]) + 1 if max_number else 1
        return f"{prefix}{sequence:06d}"
