"""SQLAlchemy Company Repository Implementation"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.company_repository import CompanyRepository
from src.domain.company import Company
from src.domain.group_setting import GroupSetting


class SqlAlchemyCompanyRepository(CompanyRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, company_id: int) -> Optional[Company]:
        statement = select(Company).where(Company.id == company_id)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def create(self, company: Company) -> Company:
        self.session.add(company)
        await self.session.flush()
        await self.session.refresh(company)
        return company

    async def get_group_setting(self, group_settings_id: int) -> Optional[GroupSetting]:
        statement = select(GroupSetting).where(GroupSetting.id == group_settings_id)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()
