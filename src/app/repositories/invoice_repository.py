"""Invoice Repository Interface

Defines the contract for invoice and invitation persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional
from src.domain.invoice import Invoice
from src.domain.invoice_invitation import InvoiceInvitation


class InvoiceRepository(ABC):
    """
    Repository interface for Invoice persistence

    Provides access to invoice data for billing operations.
    """

    @abstractmethod
    async def create(self, invoice: Invoice) -> Invoice:
        """
        Create a new invoice

        Args:
            invoice: Invoice entity to persist

        Returns:
            Created Invoice with generated ID
        """
        pass

    @abstractmethod
    async def get_by_id(self, invoice_id: int, for_update: bool = False) -> Optional[Invoice]:
        """
        Retrieve invoice by ID

        Args:
            invoice_id: Invoice ID
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Invoice if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, invoice: Invoice) -> Invoice:
        """
        Update an existing invoice

        Args:
            invoice: Invoice entity with updated values

        Returns:
            Updated Invoice
        """
        pass

    @abstractmethod
    async def list_by_client(self, client_id: int) -> List[Invoice]:
        """
        Retrieve all non-deleted invoices of a client

        Args:
            client_id: Client ID

        Returns:
            List of invoices ordered by ID
        """
        pass

    @abstractmethod
    async def list_auto_bill_due(self, due_on: date, limit: int = 100) -> List[int]:
        """
        Find invoices eligible for automatic collection

        Selects non-deleted sent/partial invoices with auto billing enabled,
        a positive balance and a due date on or before `due_on`.

        Args:
            due_on: Latest due date to include
            limit: Maximum number of invoice IDs to return

        Returns:
            Invoice IDs ordered by due date
        """
        pass

    @abstractmethod
    async def generate_number(self, company_id: int) -> str:
        """
        Generate the next invoice number of a company

        Format: INV-NNNNNN (e.g., INV-000001)

        Returns:
            Unique invoice number string
        """
        pass

    @abstractmethod
    async def list_invitations(self, invoice_id: int) -> List[InvoiceInvitation]:
        pass

    @abstractmethod
    async def create_invitation(self, invitation: InvoiceInvitation) -> InvoiceInvitation:
        pass
