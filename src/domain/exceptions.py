"""Domain exceptions for billing operations"""

from typing import Any, Optional


class BillingError(Exception):
    """Base class for billing domain errors"""

    code = "BILLING_ERROR"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class InvoiceValidationError(BillingError):
    """Malformed invoice input, rejected before any calculation"""

    code = "VALIDATION_ERROR"


class NoPaymentMethod(BillingError):
    """No gateway token is eligible to charge the requested amount"""

    code = "no_payment_method_specified"


class GatewayError(BillingError):
    """Payment gateway refused or failed a charge"""

    code = "GATEWAY_ERROR"

    def __init__(self, message: str, reason: Optional[str] = None, raw_response: Any = None):
        super().__init__(message, reason)
        self.raw_response = raw_response


class GatewayDeclined(GatewayError):
    code = "GATEWAY_DECLINED"


class GatewayTransportError(GatewayError):
    """Network failure or timeout while talking to the gateway"""

    code = "GATEWAY_TRANSPORT_ERROR"


class LedgerInconsistency(BillingError):
    """Reconciliation found discrepancies that were not corrected"""

    code = "LEDGER_INCONSISTENCY"

    def __init__(self, message: str, report: Any = None):
        super().__init__(message)
        self.report = report


class AppendOnlyViolation(BillingError):
    """Attempt to update or delete a ledger entry"""

    code = "LEDGER_APPEND_ONLY"


class EntityNotFound(BillingError):
    """Referenced invoice, credit, client or payment does not exist"""

    code = "ENTITY_NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity.capitalize()} {entity_id} not found")
        self.code = f"{entity.upper()}_NOT_FOUND"
