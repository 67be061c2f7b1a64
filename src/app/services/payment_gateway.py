"""Payment Gateway Interface

Capability interface of an external payment processor. Concrete gateways
are selected per client token through the gateway key of its company
gateway.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Iterator, Optional
from pydantic import BaseModel


class GatewayResponse(BaseModel):
    """Outcome of a charge the gateway answered"""

    success: bool
    transaction_ref: Optional[str] = None
    raw_response: Any = None


class PaymentGateway(ABC):
    @abstractmethod
    async def charge(
        self, token: str, amount: Decimal, currency: str, reference: str
    ) -> GatewayResponse:
        """
        Charge a stored payment method

        Args:
            token: Gateway side payment method reference
            amount: Amount to charge
            currency: ISO 4217 currency code
            reference: Merchant reference (invoice number)

        Returns:
            GatewayResponse

        Raises:
            GatewayError: The gateway could not be reached or refused the charge
        """
        pass


class GatewayRegistry:
    """Gateway implementations keyed by gateway key"""

    def __init__(self, gateways: Optional[Dict[str, PaymentGateway]] = None):
        self._gateways: Dict[str, PaymentGateway] = dict(gateways or {})

    def register(self, gateway_key: str, gateway: PaymentGateway) -> None:
        self._gateways[gateway_key] = gateway

    def get(self, gateway_key: str) -> Optional[PaymentGateway]:
        return self._gateways.get(gateway_key)

    def __contains__(self, gateway_key: str) -> bool:
        return gateway_key in self._gateways

    def __iter__(self) -> Iterator[str]:
        return iter(self._gateways)
