"""SQLAlchemy Ledger Entry Repository Implementation

Append-only persistence of ledger entries. Rows are only ever inserted;
the append-only guard on the session rejects updates and deletes.
"""

from typing import List, Optional
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.ledger_entry import LedgerEntry, LedgerStream


class SqlAlchemyLedgerEntryRepository(LedgerEntryRepository):
    """
    SQLAlchemy implementation of LedgerEntryRepository

    Features:
    - Insert-only writes
    - Newest-first listing with pagination
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Append a new ledger entry

        Args:
            entry: LedgerEntry to persist

        Returns:
            Persisted LedgerEntry with generated ID
        """
        self.session.add(entry)
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def get_latest(self, client_id: int, stream: LedgerStream) -> Optional[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.client_id == client_id)
            .where(LedgerEntry.stream == stream)
            .order_by(LedgerEntry.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_client(
        self,
        client_id: int,
        stream: Optional[LedgerStream] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[LedgerEntry]:
        """
        Entries of a client, newest first

        Args:
            client_id: Client ID
            stream: Optional filter by stream
            limit: Maximum number of entries to return
            offset: Offset for pagination

        Returns:
            List of ledger entries
        """
        stmt = select(LedgerEntry).where(LedgerEntry.client_id == client_id)

        if stream:
            stmt = stmt.where(LedgerEntry.stream == stream)

        stmt = stmt.order_by(LedgerEntry.id.desc())
        stmt = stmt.limit(limit).offset(offset)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_client(self, client_id: int, stream: Optional[LedgerStream] = None) -> int:
        stmt = (
            select(func.count())
            .select_from(LedgerEntry)
            .where(LedgerEntry.client_id == client_id)
        )

        if stream:
            stmt = stmt.where(LedgerEntry.stream == stream)

        result = await self.session.execute(stmt)
        return result.scalar_one()
