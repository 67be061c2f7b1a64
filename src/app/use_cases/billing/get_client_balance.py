"""Get Client Balance Use Case

Retrieves a client's balance figures, formatted in the client's currency.
"""

from libs.result import Result, Return, Error
from src.app.repositories.client_repository import ClientRepository
from src.app.repositories.company_repository import CompanyRepository
from src.app.use_cases.billing.dtos import ClientBalanceResponseDTO
from src.domain.number import CURRENCIES, Currency, format_money
from src.domain.settings import resolve_setting
from .support import load_setting_levels


class GetClientBalance:
    """
    Get Client Balance Use Case

    Read-only operation returning balance, paid_to_date and credit_balance
    of a client. The display currency comes from the settings cascade.
    """

    def __init__(self, client_repo: ClientRepository, company_repo: CompanyRepository):
        """
        Initialize GetClientBalance use case

        Args:
            client_repo: Repository for accessing clients
            company_repo: Repository for company and group settings
        """
        self.client_repo = client_repo
        self.company_repo = company_repo

    async def execute(self, client_id: int) -> Result[ClientBalanceResponseDTO]:
        """
        Execute get client balance operation

        Args:
            client_id: The client identifier

        Returns:
            Result[ClientBalanceResponseDTO]: Success with balance data or error

        Errors:
            CLIENT_NOT_FOUND: Client does not exist or is deleted
        """
        client = await self.client_repo.get_by_id(client_id)

        if client is None or client.is_deleted:
            return Return.err(
                Error(
                    code="CLIENT_NOT_FOUND",
                    message=f"Client {client_id} not found",
                )
            )

        group, company = await load_setting_levels(self.company_repo, client)
        code = str(resolve_setting("currency", client, group, company)).upper()
        currency = CURRENCIES.get(code) or Currency(code=code, symbol=code)

        return Return.ok(
            ClientBalanceResponseDTO(
                client_id=client.id,
                currency=currency.code,
                balance=client.balance,
                paid_to_date=client.paid_to_date,
                credit_balance=client.credit_balance,
                formatted_balance=format_money(client.balance, currency),
                formatted_credit_balance=format_money(client.credit_balance, currency),
                last_updated=client.updated_at,
            )
        )
