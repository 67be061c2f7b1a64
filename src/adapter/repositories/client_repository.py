"""SQLAlchemy Client Repository Implementation

Clients carry the balance figures the ledger maintains, so balance-changing
reads lock the row with SELECT FOR UPDATE.
"""

from datetime import datetime
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.client_repository import ClientRepository
from src.domain.client import Client
from src.domain.client_contact import ClientContact


class SqlAlchemyClientRepository(ClientRepository):
    """
    SQLAlchemy implementation of ClientRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Contacts are managed through the owning client's repository
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, client: Client) -> Client:
        self.session.add(client)
        await self.session.flush()
        await self.session.refresh(client)
        return client

    async def get_by_id(self, client_id: int, for_update: bool = False) -> Optional[Client]:
        """
        Retrieve client by ID with optional row-level locking

        Args:
            client_id: Client ID
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            Client if found, None otherwise
        """
        stmt = select(Client).where(Client.id == client_id)

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_ids(self, company_id: Optional[int] = None) -> List[int]:
        stmt = select(Client.id).where(Client.is_deleted == False)  # noqa: E712

        if company_id is not None:
            stmt = stmt.where(Client.company_id == company_id)

        stmt = stmt.order_by(Client.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, client: Client) -> Client:
        client.updated_at = datetime.utcnow()
        self.session.add(client)
        await self.session.flush()
        await self.session.refresh(client)
        return client

    async def list_contacts(self, client_id: int) -> List[ClientContact]:
        stmt = (
            select(ClientContact)
            .where(ClientContact.client_id == client_id)
            .order_by(ClientContact.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_contact(self, contact: ClientContact) -> ClientContact:
        self.session.add(contact)
        await self.session.flush()
        await self.session.refresh(contact)
        return contact
