"""Client Repository Interface

Defines the contract for client and client contact persistence.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.client import Client
from src.domain.client_contact import ClientContact


class ClientRepository(ABC):
    """
    Repository interface for Client persistence

    Balance-changing callers load clients with for_update=True so that
    concurrent adjustments of the same client are serialized.
    """

    @abstractmethod
    async def create(self, client: Client) -> Client:
        """
        Create a new client

        Args:
            client: Client entity to persist

        Returns:
            Created Client with generated ID
        """
        pass

    @abstractmethod
    async def get_by_id(self, client_id: int, for_update: bool = False) -> Optional[Client]:
        """
        Retrieve client by ID

        Args:
            client_id: Client ID
            for_update: If True, lock the row with SELECT FOR UPDATE (pessimistic lock)

        Returns:
            Client if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_ids(self, company_id: Optional[int] = None) -> List[int]:
        """
        List IDs of non-deleted clients

        Args:
            company_id: Optional filter by company

        Returns:
            Client IDs in ascending order
        """
        pass

    @abstractmethod
    async def update(self, client: Client) -> Client:
        pass

    @abstractmethod
    async def list_contacts(self, client_id: int) -> List[ClientContact]:
        pass

    @abstractmethod
    async def create_contact(self, contact: ClientContact) -> ClientContact:
        pass
