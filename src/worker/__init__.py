"""Background workers for billing service"""
from .ledger_reconciler import LedgerReconcilerWorker
from .auto_bill_sweep import AutoBillSweepWorker

__all__ = ["LedgerReconcilerWorker", "AutoBillSweepWorker"]
