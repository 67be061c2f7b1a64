"""Company Domain Entity

The seller. Holds company level settings, the seller tax profile and the
jurisdiction whose tax rules apply to its invoices.
"""

from datetime import datetime
from typing import Any, Dict
from sqlmodel import Field, Column
from sqlalchemy import JSON, String
from src.domain.base import BaseModel, IdType
from src.domain.tax import Jurisdiction, SellerRegionProfile


class Company(BaseModel, table=True):
    """
    Company - Tenant that issues invoices

    Domain Rules:
    - settings are the last level of the client/group/company settings cascade
    - tax_data is a serialized SellerRegionProfile
    - calculate_taxes enables automatic line item tax resolution
    """

    __tablename__ = "companies"

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique company identifier (auto-increment)"
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Company name"
    )

    settings: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Company level settings"
    )

    tax_data: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Seller region profile used by the tax rule engine"
    )

    jurisdiction: Jurisdiction = Field(
        default=Jurisdiction.DE,
        description="Seller jurisdiction selecting the tax rule provider"
    )

    calculate_taxes: bool = Field(
        default=False,
        description="Resolve line item taxes from product tax types"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Company creation timestamp"
    )

    def seller_profile(self) -> SellerRegionProfile:
        return SellerRegionProfile.model_validate(self.tax_data or {})
