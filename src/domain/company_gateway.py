"""Company Gateway Domain Entity"""

from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel as PydanticModel
from sqlmodel import Field, Column
from sqlalchemy import JSON, ForeignKey, String
from src.domain.base import BaseModel, IdType
from src.domain.number import round_value


class FeesAndLimits(PydanticModel):
    """Transaction limits and surcharge of a gateway (None/-1 = no limit)"""

    min_limit: Optional[Decimal] = None
    max_limit: Optional[Decimal] = None
    fee_amount: Decimal = Decimal("0")
    fee_percent: Decimal = Decimal("0")
    fee_cap: Decimal = Decimal("0")

    def accepts(self, amount: Decimal) -> bool:
        if self.min_limit is not None and self.min_limit != -1 and amount < self.min_limit:
            return False
        if self.max_limit is not None and self.max_limit != -1 and amount > self.max_limit:
            return False
        return True

    def fee_for(self, amount: Decimal) -> Decimal:
        fee = self.fee_amount + amount * self.fee_percent / 100
        if self.fee_cap > 0 and fee > self.fee_cap:
            fee = self.fee_cap
        return round_value(fee)


class CompanyGateway(BaseModel, table=True):
    """
    Company Gateway - Payment processor configured by a company

    gateway_key selects the gateway implementation; fees_and_limits holds a
    serialized FeesAndLimits.
    """

    __tablename__ = "company_gateways"

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
    )

    company_id: int = Field(
        sa_column=Column(IdType, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    )

    gateway_key: str = Field(
        sa_column=Column(String(50), nullable=False),
        description="Gateway implementation key (e.g., 'checkout')"
    )

    fees_and_limits: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )

    is_deleted: bool = Field(default=False)

    def limits(self) -> FeesAndLimits:
        return FeesAndLimits.model_validate(self.fees_and_limits or {})
