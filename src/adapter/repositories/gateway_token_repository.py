"""SQLAlchemy Gateway Token Repository Implementation"""

from typing import List, Tuple
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.gateway_token_repository import GatewayTokenRepository
from src.domain.client_gateway_token import ClientGatewayToken
from src.domain.company_gateway import CompanyGateway


class SqlAlchemyGatewayTokenRepository(GatewayTokenRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_client(self, client_id: int) -> List[Tuple[ClientGatewayToken, CompanyGateway]]:
        stmt = (
            select(ClientGatewayToken, CompanyGateway)
            .join(CompanyGateway, CompanyGateway.id == ClientGatewayToken.company_gateway_id)
            .where(ClientGatewayToken.client_id == client_id)
            .where(ClientGatewayToken.is_deleted == False)  # noqa: E712
            .where(CompanyGateway.is_deleted == False)  # noqa: E712
            .order_by(ClientGatewayToken.is_default.desc(), ClientGatewayToken.id)
        )
        result = await self.session.execute(stmt)
        return [(token, gateway) for token, gateway in result.all()]
