"""Ledger Entry Repository Interface

Entries are append-only: the interface offers no update or delete.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.ledger_entry import LedgerEntry, LedgerStream


class LedgerEntryRepository(ABC):
    """
    Repository interface for LedgerEntry persistence
    """

    @abstractmethod
    async def append(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Append a new ledger entry

        Args:
            entry: LedgerEntry to persist

        Returns:
            Persisted LedgerEntry with generated ID
        """
        pass

    @abstractmethod
    async def get_latest(self, client_id: int, stream: LedgerStream) -> Optional[LedgerEntry]:
        """
        Most recent entry of a client's stream

        Args:
            client_id: Client ID
            stream: Ledger stream

        Returns:
            LedgerEntry with the highest ID, None if the stream is empty
        """
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    async def count_by_client(self, client_id: int, stream: Optional[LedgerStream] = None) -> int:
        pass
