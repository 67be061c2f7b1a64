"""Credit Repository Interface"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.credit import Credit


class CreditRepository(ABC):
    """Repository interface for Credit persistence"""

    @abstractmethod
    async def create(self, credit: Credit) -> Credit:
        pass

    @abstractmethod
    async def get_by_id(self, credit_id: int, for_update: bool = False) -> Optional[Credit]:
        pass

    @abstractmethod
    async def update(self, credit: Credit) -> Credit:
        pass

    @abstractmethod
    async def list_available(self, client_id: int, for_update: bool = False) -> List[Credit]:
        """
        Credits that can still be applied

        Non-deleted, non-draft credits with a positive balance, oldest first
        (created_at, then ID).

        Args:
            client_id: Client ID
            for_update: If True, lock the rows with SELECT FOR UPDATE

        Returns:
            List of credits in consumption order
        """
        pass

    @abstractmethod
    async def list_by_client(self, client_id: int) -> List[Credit]:
        """All non-deleted credits of a client"""
        pass

    @abstractmethod
    async def generate_number(self, company_id: int) -> str:
        pass
