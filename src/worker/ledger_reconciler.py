"""Ledger Reconciliation Background Worker

Periodically recomputes client balances from invoices, payments and credits
and compares them with the stored figures and the ledger.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
import sys
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyCreditRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyLedgerEntryRepository,
    SqlAlchemyPaymentRepository,
)
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.use_cases.billing import ReconcileCommandDTO, ReconcileLedger, ReconciliationResultDTO
from src.domain.exceptions import LedgerInconsistency

logger = logging.getLogger(__name__)


class LedgerReconcilerWorker:
    """
    Background worker for client ledger reconciliation

    Features:
    - Checks every client (or one) against invoices, payments, credits and the ledger
    - Optional fix mode writing corrective ledger entries
    - Raises LedgerInconsistency when asked to and discrepancies stay uncorrected
    - Can run once or continuously

    Usage:
        # Run once
        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        # Run continuously
        worker = LedgerReconcilerWorker()
        await worker.run_forever(interval_seconds=86400)  # Daily
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI

        # Create engine and session factory
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("LedgerReconcilerWorker initialized")

    async def run_once(
        self,
        client_id: Optional[int] = None,
        fix: bool = False,
        raise_on_discrepancy: bool = False,
    ) -> ReconciliationResultDTO:
        """
        Run reconciliation once

        Args:
            client_id: Reconcile one client only; all clients when None
            fix: Correct the discrepancies found
            raise_on_discrepancy: Raise when uncorrected discrepancies remain

        Returns:
            ReconciliationResultDTO with reconciliation results

        Raises:
            RuntimeError: The reconciliation itself failed
            LedgerInconsistency: Uncorrected discrepancies remain and
                raise_on_discrepancy is set
        """
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                clients_checked=0,
                discrepancies_found=0,
                corrected=0,
                uncorrected=0,
                fix_mode=fix,
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            client_repo = SqlAlchemyClientRepository(session)
            invoice_repo = SqlAlchemyInvoiceRepository(session)
            credit_repo = SqlAlchemyCreditRepository(session)
            ledger_repo = SqlAlchemyLedgerEntryRepository(session)

            use_case = ReconcileLedger(
                uow=SqlAlchemyUnitOfWork(session),
                client_repo=client_repo,
                invoice_repo=invoice_repo,
                payment_repo=SqlAlchemyPaymentRepository(session),
                credit_repo=credit_repo,
                ledger_repo=ledger_repo,
                ledger=BalanceLedger(ledger_repo, client_repo, invoice_repo, credit_repo),
                tolerance=Decimal(str(ApplicationConfig.RECONCILIATION_TOLERANCE)),
                notification_service=create_notification_service(ApplicationConfig.NOTIFICATION_WEBHOOK),
            )

            result = await use_case.execute(ReconcileCommandDTO(client_id=client_id, fix=fix))

            if result.is_err():
                logger.error(f"Reconciliation failed: {result.error.message}")
                raise RuntimeError(f"Reconciliation failed: {result.error.message}")

            response = result.value

            # Log uncorrected discrepancies with severity
            if response.uncorrected > 0:
                logger.error(
                    f"ALERT: {response.uncorrected} ledger discrepancies remain uncorrected!"
                )
                for d in response.discrepancies:
                    if d.corrected:
                        continue
                    logger.error(
                        f"  - Client {d.client_id} {d.kind.value}: "
                        f"expected={d.expected}, actual={d.actual} {d.message}"
                    )
                if raise_on_discrepancy:
                    raise LedgerInconsistency(
                        f"{response.uncorrected} ledger discrepancies remain uncorrected",
                        report=response,
                    )

            return response

    async def run_forever(self, interval_seconds: int = 86400, fix: bool = False):
        """
        Run reconciliation continuously at specified interval

        Args:
            interval_seconds: Seconds between reconciliation runs (default: 24 hours)
            fix: Correct the discrepancies found on every run
        """
        logger.info(
            f"Starting continuous ledger reconciliation with {interval_seconds}s interval"
        )

        while True:
            try:
                result = await self.run_once(fix=fix)
                logger.info(
                    f"Reconciliation cycle complete. "
                    f"Checked {result.clients_checked} clients, "
                    f"found {result.discrepancies_found} discrepancies "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker shutdown complete")


def print_summary(result: ReconciliationResultDTO) -> None:
    print("Reconciliation complete:")
    print(f"  Clients checked: {result.clients_checked}")
    print(f"  Discrepancies found: {result.discrepancies_found}")
    print(f"  Corrected: {result.corrected}")
    print(f"  Uncorrected: {result.uncorrected}")
    print(f"  Execution time: {result.execution_time_ms}ms")
    if result.summary:
        print("\nBy kind:")
        for kind, count in sorted(result.summary.items()):
            print(f"  - {kind}: {count}")


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once, report only
        python -m src.worker.ledger_reconciler --once

        # Run once for one client and correct what is found
        python -m src.worker.ledger_reconciler --once --client-id 7 --fix

        # Run continuously with custom interval (in seconds)
        python -m src.worker.ledger_reconciler --interval 3600

    Returns:
        Exit code: 1 when uncorrected discrepancies remain after a single run
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Ledger Reconciliation Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--client-id", type=int, default=None, help="Reconcile a single client"
    )
    parser.add_argument(
        "--fix", action="store_true", help="Write corrective entries for discrepancies"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 86400 = 24 hours)"
    )
    args = parser.parse_args(argv)

    worker = LedgerReconcilerWorker()

    try:
        if args.once:
            try:
                result = await worker.run_once(
                    client_id=args.client_id, fix=args.fix, raise_on_discrepancy=True
                )
            except LedgerInconsistency as e:
                print_summary(e.report)
                return 1
            print_summary(result)
        else:
            await worker.run_forever(interval_seconds=args.interval, fix=args.fix)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
