"""Unit tests for AutoBillSweepWorker"""

import asyncio
import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

from libs.result import Error, Return
from src.app.services.payment_gateway import GatewayRegistry
from src.worker.auto_bill_sweep import AutoBillSweepWorker

MODULE = "src.worker.auto_bill_sweep"


@pytest.fixture
def mock_app_config():
    with patch(f"{MODULE}.ApplicationConfig") as config:
        config.DB_URI = "sqlite+aiosqlite:///:memory:"
        config.AUTO_BILL_ENABLED = True
        config.AUTO_BILL_CONCURRENCY = 5
        config.AUTO_BILL_MAX_TRIES = 3
        config.GATEWAY_TIMEOUT_SECONDS = 30.0
        config.GATEWAY_ENDPOINTS = {"checkout": "https://gateway.test"}
        config.NOTIFICATION_WEBHOOK = None
        yield config


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock()
    return session


@pytest.fixture
def mock_engine(mock_session):
    with patch(f"{MODULE}.create_async_engine") as create_engine, patch(f"{MODULE}.sessionmaker") as maker:
        engine = MagicMock()
        engine.dispose = AsyncMock()
        create_engine.return_value = engine
        maker.return_value = MagicMock(return_value=mock_session)
        yield create_engine


@pytest.fixture
def mock_invoice_repo_class():
    with patch(f"{MODULE}.SqlAlchemyInvoiceRepository") as repo_class:
        repo_class.return_value.list_auto_bill_due = AsyncMock(return_value=[])
        yield repo_class


@pytest.fixture
def worker(mock_app_config, mock_engine, mock_invoice_repo_class):
    return AutoBillSweepWorker(gateways=GatewayRegistry(), notification_service=MagicMock())


class TestAutoBillSweepWorkerInit:
    def test_defaults_from_config(self, mock_app_config, mock_engine):
        """
        Given: No gateways or notification service passed
        When: Worker is initialized
        Then: Both are built from ApplicationConfig
        """
        # Arrange
        with patch(f"{MODULE}.create_gateway_registry") as create_registry, \
                patch(f"{MODULE}.create_notification_service") as create_service:
            # Act
            worker = AutoBillSweepWorker()

        # Assert
        create_registry.assert_called_once_with({"checkout": "https://gateway.test"}, 30.0)
        create_service.assert_called_once_with(None)
        assert worker.concurrency == 5
        assert not worker.cancel_event.is_set()

    def test_stop_sets_cancel_event(self, worker):
        worker.stop()

        assert worker.cancel_event.is_set()


@pytest.mark.asyncio
class TestAutoBillSweepRunOnce:
    async def test_skips_when_disabled(self, worker, mock_app_config, mock_invoice_repo_class):
        mock_app_config.AUTO_BILL_ENABLED = False

        result = await worker.run_once()

        assert result.invoices_found == 0
        mock_invoice_repo_class.assert_not_called()

    async def test_tallies_outcomes(self, worker, mock_invoice_repo_class):
        """
        Given: Three due invoices; one succeeds, one is declined, one raises
        When: The sweep runs
        Then: Every invoice is attempted and failures are keyed by invoice
        """
        # Arrange
        mock_invoice_repo_class.return_value.list_auto_bill_due = AsyncMock(return_value=[1, 2, 3])
        outcomes = {
            1: Return.ok(MagicMock()),
            2: Return.err(Error(code="GATEWAY_DECLINED", message="declined")),
        }

        async def bill_invoice(invoice_id):
            if invoice_id == 3:
                raise Exception("connection lost")
            return outcomes[invoice_id]

        worker.bill_invoice = AsyncMock(side_effect=bill_invoice)

        # Act
        result = await worker.run_once(due_on=date(2024, 2, 1))

        # Assert
        assert result.invoices_found == 3
        assert result.succeeded == 1
        assert result.failed == 2
        assert result.failures == {2: "GATEWAY_DECLINED", 3: "AUTO_BILL_FAILED"}
        mock_invoice_repo_class.return_value.list_auto_bill_due.assert_called_once_with(date(2024, 2, 1))
        assert worker.bill_invoice.call_count == 3

    async def test_concurrency_is_bounded(self, mock_app_config, mock_engine, mock_invoice_repo_class):
        # Arrange
        mock_invoice_repo_class.return_value.list_auto_bill_due = AsyncMock(return_value=list(range(1, 7)))
        worker = AutoBillSweepWorker(gateways=GatewayRegistry(), notification_service=MagicMock(), concurrency=2)
        running = 0
        peak = 0

        async def bill_invoice(invoice_id):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return Return.ok(MagicMock())

        worker.bill_invoice = bill_invoice

        # Act
        result = await worker.run_once()

        # Assert
        assert result.succeeded == 6
        assert peak == 2

    async def test_bill_invoice_passes_cancel_event(self, worker):
        # Arrange
        with patch(f"{MODULE}.AutoBillInvoice") as use_case_class:
            use_case_class.return_value.execute = AsyncMock(return_value=Return.ok(MagicMock()))
            worker.stop()

            # Act
            await worker.bill_invoice(12)

        # Assert
        command = use_case_class.return_value.execute.call_args.args[0]
        assert command.invoice_id == 12
        assert use_case_class.return_value.execute.call_args.kwargs["cancel_event"] is worker.cancel_event
        assert use_case_class.call_args.kwargs["max_tries"] == 3

    async def test_shutdown_stops_and_disposes(self, worker):
        await worker.shutdown()

        assert worker.cancel_event.is_set()
        worker.engine.dispose.assert_called_once()
