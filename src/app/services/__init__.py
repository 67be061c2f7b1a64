from .unit_of_work import UnitOfWork
from .notification_service import NotificationService, BillingEvent, BillingEventType
from .payment_gateway import PaymentGateway, GatewayResponse, GatewayRegistry
from .balance_ledger import BalanceLedger, EntityKind, EntityRef

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "BillingEvent",
    "BillingEventType",
    "PaymentGateway",
    "GatewayResponse",
    "GatewayRegistry",
    "BalanceLedger",
    "EntityKind",
    "EntityRef",
]
