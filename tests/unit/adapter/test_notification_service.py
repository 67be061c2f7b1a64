"""Unit tests for notification service implementations"""

import httpx
import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from src.adapter.services.notification_service import (
    CompositeNotificationService,
    LoggingNotificationService,
    WebhookNotificationService,
    create_notification_service,
)
from src.app.services.notification_service import BillingEvent, BillingEventType

_AsyncClient = httpx.AsyncClient


def _mock_client(handler):
    def factory(**kwargs):
        return _AsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    return patch("httpx.AsyncClient", side_effect=factory)


@pytest.fixture
def event():
    return BillingEvent(
        event_type=BillingEventType.PAYMENT_CREATED,
        client_id=7,
        invoice_id=12,
        payment_id=100,
        payload={"amount": "40.00"},
    )


@pytest.mark.asyncio
class TestNotificationServices:
    async def test_webhook_posts_event(self, event):
        # Arrange
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(204)

        service = WebhookNotificationService("https://hooks.test/billing")

        # Act
        with _mock_client(handler):
            delivered = await service.publish(event)

        # Assert
        assert delivered is True
        body = json.loads(requests[0].content)
        assert body["type"] == "payment_created"
        assert body["invoice_id"] == 12
        assert body["payload"] == {"amount": "40.00"}

    async def test_webhook_failure_does_not_raise(self, event):
        service = WebhookNotificationService("https://hooks.test/billing")

        with _mock_client(lambda request: httpx.Response(500)):
            delivered = await service.publish(event)

        assert delivered is False

    async def test_logging_always_delivers(self, event):
        assert await LoggingNotificationService().publish(event) is True

    async def test_composite_survives_failing_service(self, event):
        # Arrange
        failing = MagicMock()
        failing.publish = AsyncMock(side_effect=Exception("boom"))
        working = MagicMock()
        working.publish = AsyncMock(return_value=True)

        # Act
        delivered = await CompositeNotificationService([failing, working]).publish(event)

        # Assert
        assert delivered is True
        working.publish.assert_called_once_with(event)

    async def test_factory_adds_webhook_when_configured(self):
        assert isinstance(create_notification_service(), LoggingNotificationService)
        assert isinstance(create_notification_service("https://hooks.test"), CompositeNotificationService)
