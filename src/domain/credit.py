"""Credit Domain Entity

Credits are shaped like invoices; their balance is consumed when they are
applied to invoices.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Numeric, String
from src.domain.base import BaseModel, IdType


class CreditStatus(str, Enum):
    """Credit status types"""
    DRAFT = "draft"
    SENT = "sent"
    PARTIAL = "partial"
    APPLIED = "applied"


class Credit(BaseModel, table=True):
    """
    Credit - Amount owed to the client, usable to pay invoices

    Domain Rules:
    - balance decreases as the credit is applied
    - paid_to_date increases by the same amount
    - invoice_id is set when the credit reverses an existing invoice
    - credits are consumed oldest first
    """

    __tablename__ = "credits"
    __table_args__ = (
        Index('ix_credits_client_id', 'client_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique credit identifier (auto-increment)"
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    )

    client_id: int = Field(
        sa_column=Column(IdType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
    )

    invoice_id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True),
        description="Invoice this credit reverses, if any"
    )

    number: str = Field(
        sa_column=Column(String(50), nullable=False),
    )

    status: CreditStatus = Field(default=CreditStatus.SENT)

    amount: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Credit total"
    )

    balance: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Unapplied remainder"
    )

    paid_to_date: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Amount applied so far"
    )

    is_deleted: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Credit creation timestamp (consumption order)"
    )

    def set_calculated_status(self) -> None:
        if self.balance == 0:
            self.status = CreditStatus.APPLIED
        elif self.balance != self.amount:
            self.status = CreditStatus.PARTIAL
        else:
            self.status = CreditStatus.SENT
