"""
List Ledger Entries Use Case

Retrieves the ledger history of a client with pagination.
"""
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.domain.ledger_entry import LedgerStream
from .dtos import LedgerEntryDTO, LedgerEntryListResponseDTO


class ListLedgerEntries:
    """
    Use case: View client ledger

    Entries are ordered newest first; an optional stream filter narrows the
    history to one client figure.
    """

    def __init__(self, ledger_repo: LedgerEntryRepository, client_repo: ClientRepository):
        self.ledger_repo = ledger_repo
        self.client_repo = client_repo

    async def execute(
        self,
        client_id: int,
        stream: Optional[LedgerStream] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result[LedgerEntryListResponseDTO]:
        """
        List ledger entries of a client.

        Args:
            client_id: Client identifier
            stream: Optional stream filter
            limit: Maximum number of entries to return (default 50)
            offset: Number of entries to skip (default 0)

        Returns:
            Result[LedgerEntryListResponseDTO]: Paginated entry list
        """
        client = await self.client_repo.get_by_id(client_id)
        if client is None:
            return Return.err(Error(code="CLIENT_NOT_FOUND", message=f"Client {client_id} not found"))

        entries = await self.ledger_repo.list_by_client(client_id, stream=stream, limit=limit, offset=offset)
        total = await self.ledger_repo.count_by_client(client_id, stream=stream)

        return Return.ok(
            LedgerEntryListResponseDTO(
                client_id=client_id,
                entries=[LedgerEntryDTO.from_entry(entry) for entry in entries],
                total=total,
                limit=limit,
                offset=offset,
            )
        )
