"""Payment Domain Entity"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Numeric, String
from src.domain.base import BaseModel, IdType


class PaymentStatus(str, Enum):
    """Payment status types"""
    PENDING = "pending"
    COMPLETED = "completed"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Statuses whose amounts count towards a client's paid_to_date
PAID_STATUSES = (
    PaymentStatus.PENDING,
    PaymentStatus.COMPLETED,
    PaymentStatus.PARTIALLY_REFUNDED,
    PaymentStatus.REFUNDED,
)


class PaymentType(str, Enum):
    """How the payment was funded"""
    CREDIT = "credit"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    MANUAL = "manual"


class Payment(BaseModel, table=True):
    """
    Payment - Money received from a client

    Domain Rules:
    - applied <= amount (the remainder is unapplied overpayment)
    - refunded <= amount
    - linked to invoices and credits through Paymentable rows
    - CREDIT payments are funded by client credits, not by a gateway
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index('ix_payments_client_id', 'client_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique payment identifier (auto-increment)"
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    )

    client_id: int = Field(
        sa_column=Column(IdType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
    )

    number: str = Field(
        sa_column=Column(String(50), nullable=False),
    )

    amount: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Amount received"
    )

    applied: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Portion applied to invoice balances"
    )

    refunded: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Portion refunded"
    )

    status: PaymentStatus = Field(default=PaymentStatus.COMPLETED)

    type: PaymentType = Field(default=PaymentType.MANUAL)

    currency: str = Field(
        default="EUR",
        sa_column=Column(String(3), nullable=False),
    )

    gateway_key: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
        description="Gateway that processed the payment"
    )

    transaction_reference: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Gateway transaction reference"
    )

    is_deleted: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Payment timestamp"
    )

    def set_refund_status(self) -> None:
        if self.refunded >= self.amount:
            self.status = PaymentStatus.REFUNDED
        elif self.refunded > 0:
            self.status = PaymentStatus.PARTIALLY_REFUNDED
