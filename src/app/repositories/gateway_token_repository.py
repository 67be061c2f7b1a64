"""Gateway Token Repository Interface"""

from abc import ABC, abstractmethod
from typing import List, Tuple
from src.domain.client_gateway_token import ClientGatewayToken
from src.domain.company_gateway import CompanyGateway


class GatewayTokenRepository(ABC):
    @abstractmethod
    async def list_for_client(self, client_id: int) -> List[Tuple[ClientGatewayToken, CompanyGateway]]:
        """
        Stored payment methods of a client with their gateways

        Excludes deleted tokens and tokens of deleted gateways.

        Returns:
            (token, gateway) pairs, default token first, then by token ID
        """
        pass
