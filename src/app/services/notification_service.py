"""Notification Service Interface

Defines the contract for publishing billing events. Publishing is
fire-and-forget from the caller's perspective: a failed delivery never
fails the billing operation that produced the event.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class BillingEventType(str, Enum):
    """Billing event types"""
    PAYMENT_CREATED = "payment_created"
    INVOICE_PAID = "invoice_paid"
    PAYMENT_FAILED = "payment_failed"
    GATEWAY_RESPONSE_LOGGED = "gateway_response_logged"
    LEDGER_DISCREPANCY = "ledger_discrepancy"


class BillingEvent(BaseModel):
    """Event emitted by billing use cases"""

    event_type: BillingEventType
    client_id: Optional[int] = None
    invoice_id: Optional[int] = None
    payment_id: Optional[int] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=datetime.utcnow)


class NotificationService(ABC):
    """
    Abstract notification service for billing events

    Implementations can deliver events via:
    - Logging
    - Webhook (HTTP POST)
    """

    @abstractmethod
    async def publish(self, event: BillingEvent) -> bool:
        """
        Publish a billing event

        Args:
            event: BillingEvent to deliver

        Returns:
            True if the event was delivered, False otherwise
        """
        pass
