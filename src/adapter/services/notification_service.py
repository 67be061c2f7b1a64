"""Notification Service Implementations

Provides concrete implementations for publishing billing events.
"""

import logging
from typing import Optional
import httpx
from src.app.services.notification_service import BillingEvent, BillingEventType, NotificationService

logger = logging.getLogger(__name__)

# Events describing a failure are logged at WARNING
_WARNING_EVENTS = (
    BillingEventType.PAYMENT_FAILED,
    BillingEventType.LEDGER_DISCREPANCY,
)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs events

    Useful for development and testing, or as a fallback.
    """

    async def publish(self, event: BillingEvent) -> bool:
        """
        Log a billing event

        Args:
            event: BillingEvent to log

        Returns:
            Always True (logging never fails)
        """
        level = logging.WARNING if event.event_type in _WARNING_EVENTS else logging.INFO
        logger.log(
            level,
            f"[BILLING EVENT] Type: {event.event_type.value}, "
            f"Client: {event.client_id}, "
            f"Invoice: {event.invoice_id}, "
            f"Payment: {event.payment_id}, "
            f"Payload: {event.payload}",
        )
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that sends events via HTTP webhook

    Sends JSON payload to configured webhook URL.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        """
        Initialize webhook notification service

        Args:
            webhook_url: URL to POST events to
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def publish(self, event: BillingEvent) -> bool:
        """
        Send a billing event via webhook

        Args:
            event: BillingEvent to deliver

        Returns:
            True if webhook call succeeded, False otherwise
        """
        payload = {"type": event.event_type.value, **event.model_dump(mode="json", exclude={"event_type"})}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                logger.info(
                    f"Webhook notification sent for {event.event_type.value} to {self.webhook_url}"
                )
                return True
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to send webhook notification for {event.event_type.value}: {e}"
            )
            return False
        except Exception as e:
            logger.error(
                f"Unexpected error sending webhook notification for {event.event_type.value}: {e}"
            )
            return False


class CompositeNotificationService(NotificationService):
    """
    Notification service that delegates to multiple services

    Useful for sending to multiple channels (e.g., log + webhook).
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def publish(self, event: BillingEvent) -> bool:
        """
        Publish an event to all configured services

        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.publish(event):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.

    Returns:
        Configured NotificationService
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
