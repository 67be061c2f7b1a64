"""Client Domain Entity

The buyer. Owns the aggregate balance figures kept consistent by the
balance ledger.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, ForeignKey, Numeric, String
from src.domain.base import BaseModel, IdType
from src.domain.tax import ClientTaxProfile


class Client(BaseModel, table=True):
    """
    Client - Customer of a company

    Domain Rules:
    - balance == sum of balances of non-deleted sent/partial invoices
    - paid_to_date is the lifetime amount paid, net of refunds
    - credit_balance is the sum of unapplied credit balances
    - balance, paid_to_date and credit_balance change only through the
      balance ledger, which records every change as a LedgerEntry
    """

    __tablename__ = "clients"
    __table_args__ = (
        Index('ix_clients_company_id', 'company_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique client identifier (auto-increment)"
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        description="Owning company"
    )

    group_settings_id: Optional[int] = Field(
        default=None,
        sa_column=Column(IdType, ForeignKey("group_settings.id", ondelete="SET NULL"), nullable=True),
        description="Optional settings group"
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Client display name"
    )

    number: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True),
        description="Client number"
    )

    settings: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Client level settings (first level of the cascade)"
    )

    balance: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Outstanding balance over sent/partial invoices"
    )

    paid_to_date: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Lifetime payments applied, net of refunds"
    )

    credit_balance: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Unapplied credit balance"
    )

    country_code: str = Field(
        default="DE",
        sa_column=Column(String(2), nullable=False, default="DE"),
        description="ISO 3166-1 alpha-2 country code"
    )

    is_tax_exempt: bool = Field(default=False)

    has_valid_vat_number: bool = Field(default=False)

    is_deleted: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Client creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )

    def tax_profile(self) -> ClientTaxProfile:
        return ClientTaxProfile(
            country_code=self.country_code,
            is_tax_exempt=self.is_tax_exempt,
            has_valid_vat_number=self.has_valid_vat_number,
        )
