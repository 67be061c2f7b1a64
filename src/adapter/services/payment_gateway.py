"""Payment Gateway Implementations

HTTP client for gateways that expose a simple JSON charge endpoint.
Vendor SDKs are not used; each configured gateway key maps to a base URL.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional
import httpx
from src.app.services.payment_gateway import GatewayRegistry, GatewayResponse, PaymentGateway
from src.domain.exceptions import GatewayTransportError

logger = logging.getLogger(__name__)


class HttpPaymentGateway(PaymentGateway):
    """
    Gateway reached over HTTP

    POSTs {token, amount, currency, reference} to `{base_url}/charges` and
    expects {"success": bool, "transaction_ref": str} back. Non-2xx answers
    with a JSON body count as declines; network failures, timeouts and
    server errors are transport errors.
    """

    def __init__(self, gateway_key: str, base_url: str, timeout: float = 30.0):
        self.gateway_key = gateway_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def charge(
        self, token: str, amount: Decimal, currency: str, reference: str
    ) -> GatewayResponse:
        payload = {
            "token": token,
            "amount": str(amount),
            "currency": currency,
            "reference": reference,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/charges",
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise GatewayTransportError(
                f"Gateway {self.gateway_key} timed out",
                reason=str(e) or "timeout",
                raw_response=repr(e),
            )
        except httpx.HTTPError as e:
            raise GatewayTransportError(
                f"Gateway {self.gateway_key} unreachable",
                reason=str(e),
                raw_response=repr(e),
            )

        if response.status_code >= 500:
            raise GatewayTransportError(
                f"Gateway {self.gateway_key} answered {response.status_code}",
                reason=response.reason_phrase,
                raw_response=response.text,
            )

        try:
            body = response.json()
        except ValueError:
            raise GatewayTransportError(
                f"Gateway {self.gateway_key} returned a malformed response",
                raw_response=response.text,
            )
        if not isinstance(body, dict):
            raise GatewayTransportError(
                f"Gateway {self.gateway_key} returned a malformed response",
                raw_response=response.text,
            )

        success = response.is_success and bool(body.get("success"))
        logger.info(
            f"Gateway {self.gateway_key} charge for {reference}: "
            f"status={response.status_code}, success={success}"
        )
        return GatewayResponse(
            success=success,
            transaction_ref=body.get("transaction_ref"),
            raw_response=body,
        )


def create_gateway_registry(
    endpoints: Optional[Dict[str, str]] = None, timeout: float = 30.0
) -> GatewayRegistry:
    """
    Factory function to build the gateway registry from configuration

    Args:
        endpoints: Mapping of gateway key to base URL
        timeout: Per-request timeout in seconds

    Returns:
        GatewayRegistry with one HttpPaymentGateway per endpoint
    """
    registry = GatewayRegistry()
    for gateway_key, base_url in (endpoints or {}).items():
        registry.register(gateway_key, HttpPaymentGateway(gateway_key, base_url, timeout))
    return registry
