"""Ledger Entry Domain Entity

Immutable append-only record of every change to a client's balance figures.
Each entry carries the signed adjustment and the running value of its
stream after the adjustment.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import ConfigDict
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Numeric, String, Text, event
from sqlalchemy.orm import Session
from src.domain.exceptions import AppendOnlyViolation
from src.domain.base import BaseModel, IdType


class LedgerStream(str, Enum):
    """Client figure an entry adjusts"""
    BALANCE = "balance"
    PAID_TO_DATE = "paid_to_date"
    CREDIT_BALANCE = "credit_balance"


class LedgerActivity(str, Enum):
    """Operation that produced the entry"""
    INVOICE = "invoice"              # Invoice sent, updated or cancelled
    PAYMENT = "payment"              # Payment applied to an invoice
    CREDIT = "credit"                # Credit applied
    LATE_FEE = "late_fee"            # Late fee added to an invoice
    GATEWAY_FEE = "gateway_fee"      # Gateway fee added or unwound
    REFUND = "refund"                # Payment refunded
    MANUAL = "manual"                # Manual adjustment
    CORRECTION = "correction"        # Reconciliation fix-up


class LedgerEntry(BaseModel, table=True):
    """
    Ledger Entry - Append-only audit trail of balance changes

    Domain Rules:
    - Entries are never updated or deleted
    - balance is the snapshot of the stream value after this adjustment
    - The latest BALANCE entry of a client equals client.balance
    - Corrections are new entries, never edits
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index('ix_ledger_entries_client_stream', 'client_id', 'stream'),
        Index('ix_ledger_entries_entity', 'entity_type', 'entity_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique entry identifier (auto-increment, append order)"
    )

    client_id: int = Field(
        sa_column=Column(IdType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        description="Client whose figures changed"
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    )

    stream: LedgerStream = Field(
        description="Client figure adjusted (balance, paid_to_date, credit_balance)"
    )

    activity: LedgerActivity = Field(
        description="Operation that produced the entry"
    )

    entity_type: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
        description="Type of the entity that changed (invoice, credit, payment, client)"
    )

    entity_id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, nullable=True),
        description="ID of the entity that changed"
    )

    adjustment: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Signed delta applied to the stream"
    )

    balance: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Stream value after the adjustment"
    )

    notes: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Entry timestamp (immutable)"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "client_id": 7,
                "company_id": 1,
                "stream": "balance",
                "activity": "payment",
                "entity_type": "invoice",
                "entity_id": 12,
                "adjustment": "-40.000000",
                "balance": "60.000000",
                "notes": "Payment PAY-000003 applied to Invoice INV-000012",
                "created_at": "2024-01-01T00:00:00Z"
            }
        }
    )


@event.listens_for(Session, "before_flush")
def _reject_ledger_mutation(session, flush_context, instances):
    """Ledger entries may be inserted, never updated or deleted"""
    for obj in session.deleted:
        if isinstance(obj, LedgerEntry):
            raise AppendOnlyViolation(f"Ledger entry {obj.id} cannot be deleted")
    for obj in session.dirty:
        if isinstance(obj, LedgerEntry) and session.is_modified(obj):
            raise AppendOnlyViolation(f"Ledger entry {obj.id} cannot be modified")
