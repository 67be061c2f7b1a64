"""Auto-Bill Sweep Background Worker

Finds sent/partial invoices with auto billing enabled that are due and
collects each one with AutoBillInvoice.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
import time
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyCompanyRepository,
    SqlAlchemyCreditRepository,
    SqlAlchemyGatewayTokenRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyLedgerEntryRepository,
    SqlAlchemyPaymentRepository,
)
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.payment_gateway import create_gateway_registry
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import GatewayRegistry
from src.app.use_cases.billing import AutoBillCommandDTO, AutoBillInvoice, AutoBillSweepResultDTO

logger = logging.getLogger(__name__)


class AutoBillSweepWorker:
    """
    Background worker for automatic invoice collection

    Features:
    - Each invoice is billed in its own session and transaction
    - At most AUTO_BILL_CONCURRENCY invoices are billed at the same time
    - stop() lets running attempts finish their credit step and skip the gateway
    - Can run once or continuously

    Usage:
        # Run once
        worker = AutoBillSweepWorker()
        result = await worker.run_once()

        # Run continuously
        worker = AutoBillSweepWorker()
        await worker.run_forever(interval_seconds=3600)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        gateways: Optional[GatewayRegistry] = None,
        notification_service: Optional[NotificationService] = None,
        concurrency: Optional[int] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            gateways: Gateway registry (defaults to the configured endpoints)
            notification_service: Event sink (defaults to logging + optional webhook)
            concurrency: Parallel invoices (defaults to AUTO_BILL_CONCURRENCY)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.gateways = gateways or create_gateway_registry(
            ApplicationConfig.GATEWAY_ENDPOINTS, ApplicationConfig.GATEWAY_TIMEOUT_SECONDS
        )
        self.notification_service = notification_service or create_notification_service(
            ApplicationConfig.NOTIFICATION_WEBHOOK
        )
        self.concurrency = concurrency or ApplicationConfig.AUTO_BILL_CONCURRENCY
        self.cancel_event = asyncio.Event()

        # Create engine and session factory
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("AutoBillSweepWorker initialized")

    def stop(self) -> None:
        """Ask running attempts to stop before their gateway charge"""
        self.cancel_event.set()

    async def bill_invoice(self, invoice_id: int):
        """Run AutoBillInvoice for one invoice in a fresh session"""
        async with self.async_session_factory() as session:
            client_repo = SqlAlchemyClientRepository(session)
            invoice_repo = SqlAlchemyInvoiceRepository(session)
            credit_repo = SqlAlchemyCreditRepository(session)
            ledger = BalanceLedger(
                SqlAlchemyLedgerEntryRepository(session), client_repo, invoice_repo, credit_repo
            )

            use_case = AutoBillInvoice(
                uow=SqlAlchemyUnitOfWork(session),
                client_repo=client_repo,
                company_repo=SqlAlchemyCompanyRepository(session),
                invoice_repo=invoice_repo,
                credit_repo=credit_repo,
                payment_repo=SqlAlchemyPaymentRepository(session),
                token_repo=SqlAlchemyGatewayTokenRepository(session),
                ledger=ledger,
                gateways=self.gateways,
                notification_service=self.notification_service,
                max_tries=ApplicationConfig.AUTO_BILL_MAX_TRIES,
                gateway_timeout=ApplicationConfig.GATEWAY_TIMEOUT_SECONDS,
            )
            return await use_case.execute(
                AutoBillCommandDTO(invoice_id=invoice_id), cancel_event=self.cancel_event
            )

    async def run_once(self, due_on: Optional[date] = None) -> AutoBillSweepResultDTO:
        """
        Bill every invoice due on or before `due_on`

        Args:
            due_on: Latest due date to include (defaults to today)

        Returns:
            AutoBillSweepResultDTO with summary
        """
        if not ApplicationConfig.AUTO_BILL_ENABLED:
            logger.info("Auto billing is disabled, skipping")
            return AutoBillSweepResultDTO(invoices_found=0, succeeded=0, failed=0, execution_time_ms=0)

        start_time = time.time()
        due_on = due_on or date.today()

        async with self.async_session_factory() as session:
            invoice_ids = await SqlAlchemyInvoiceRepository(session).list_auto_bill_due(due_on)

        logger.info(f"Found {len(invoice_ids)} invoices due for auto billing on {due_on}")

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(invoice_id: int):
            async with semaphore:
                return await self.bill_invoice(invoice_id)

        outcomes = await asyncio.gather(
            *(bounded(invoice_id) for invoice_id in invoice_ids), return_exceptions=True
        )

        succeeded = 0
        failures = {}
        for invoice_id, outcome in zip(invoice_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Unexpected error auto billing invoice {invoice_id}: {outcome}")
                failures[invoice_id] = "AUTO_BILL_FAILED"
            elif outcome.is_err():
                logger.warning(
                    f"Auto billing of invoice {invoice_id} failed: {outcome.error.code} {outcome.error.message}"
                )
                failures[invoice_id] = outcome.error.code
            else:
                succeeded += 1
                logger.info(f"Auto billed invoice {invoice_id}: {outcome.value.outcome.value}")

        execution_time_ms = int((time.time() - start_time) * 1000)
        result = AutoBillSweepResultDTO(
            invoices_found=len(invoice_ids),
            succeeded=succeeded,
            failed=len(failures),
            execution_time_ms=execution_time_ms,
            failures=failures,
        )

        logger.info(
            f"Auto-bill sweep complete: {succeeded}/{len(invoice_ids)} succeeded in {execution_time_ms}ms"
        )
        return result

    async def run_forever(self, interval_seconds: int = 3600):
        """
        Run the sweep continuously at specified interval

        Args:
            interval_seconds: Seconds between sweeps (default: 1 hour)
        """
        logger.info(f"Starting continuous auto billing with {interval_seconds}s interval")

        while not self.cancel_event.is_set():
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Auto-bill sweep failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        self.stop()
        await self.engine.dispose()
        logger.info("AutoBillSweepWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.auto_bill_sweep --once

        # Run continuously with custom interval (in seconds)
        python -m src.worker.auto_bill_sweep --interval 600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Auto-Bill Sweep Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.AUTO_BILL_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 3600)"
    )
    args = parser.parse_args()

    worker = AutoBillSweepWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print("Auto-bill sweep complete:")
            print(f"  Invoices found: {result.invoices_found}")
            print(f"  Succeeded: {result.succeeded}")
            print(f"  Failed: {result.failed}")
            print(f"  Execution time: {result.execution_time_ms}ms")
            for invoice_id, code in result.failures.items():
                print(f"  - Invoice {invoice_id}: {code}")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
