"""Paymentable Domain Entity

Join record between a payment and the invoice or credit it was applied to.
"""

from decimal import Decimal
from enum import Enum
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Numeric
from src.domain.base import BaseModel, IdType


class PaymentableType(str, Enum):
    INVOICE = "invoice"
    CREDIT = "credit"


class Paymentable(BaseModel, table=True):
    """
    Paymentable - Per link applied/refunded amount of a payment

    Domain Rules:
    - refunded <= amount
    - one row per (payment, invoice) or (payment, credit) application
    """

    __tablename__ = "paymentables"
    __table_args__ = (
        Index('ix_paymentables_payment_id', 'payment_id'),
        Index('ix_paymentables_target', 'paymentable_type', 'paymentable_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
    )

    payment_id: int = Field(
        sa_column=Column(IdType, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False),
    )

    paymentable_type: PaymentableType = Field(
        description="Kind of the linked entity (invoice, credit)"
    )

    paymentable_id: int = Field(
        sa_column=Column(IdType, nullable=False),
        description="ID of the linked invoice or credit"
    )

    amount: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Amount applied through this link"
    )

    refunded: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Amount refunded through this link"
    )
