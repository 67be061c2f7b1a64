"""Payment Repository Interface

Payments and their paymentable links are persisted together.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.payment import Payment
from src.domain.paymentable import Paymentable


class PaymentRepository(ABC):
    """Repository interface for Payment and Paymentable persistence"""

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        """
        Create a new payment

        Args:
            payment: Payment entity to persist

        Returns:
            Created Payment with generated ID
        """
        pass

    @abstractmethod
    async def get_by_id(self, payment_id: int, for_update: bool = False) -> Optional[Payment]:
        pass

    @abstractmethod
    async def update(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    async def list_by_client(self, client_id: int) -> List[Payment]:
        """All non-deleted payments of a client"""
        pass

    @abstractmethod
    async def create_paymentable(self, paymentable: Paymentable) -> Paymentable:
        pass

    @abstractmethod
    async def list_paymentables(self, payment_id: int) -> List[Paymentable]:
        pass

    @abstractmethod
    async def update_paymentable(self, paymentable: Paymentable) -> Paymentable:
        pass

    @abstractmethod
    async def generate_number(self, company_id: int) -> str:
        pass
