"""Invoice Line Item Value Object

Line items are stored as JSON on the invoice row and validated on
construction, so the calculator never sees malformed input.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductTaxType(int, Enum):
    """Product tax classification used by the tax rule engine"""
    PHYSICAL = 1
    SERVICE = 2
    DIGITAL = 3
    SHIPPING = 4
    EXEMPT = 5
    REDUCED_TAX = 6
    OVERRIDE_TAX = 7


class LineItemType(str, Enum):
    """Line item kind"""
    PRODUCT = "product"
    TASK = "task"
    GATEWAY_FEE = "gateway_fee"
    LATE_FEE = "late_fee"


class LineItem(BaseModel):
    """
    Line Item - Single billable row of an invoice or credit

    Domain Rules:
    - quantity must be >= 0
    - cost may carry up to 4 decimal places and may be negative (credits)
    - cost and quantity must be finite
    - up to two named tax rates
    - discount is a percentage or an amount, selected by the owning
      invoice's is_amount_discount flag
    """

    model_config = ConfigDict(frozen=True)

    product_key: str = Field(default="", description="Product identifier")
    notes: str = Field(default="", description="Free text shown on the line")
    quantity: Decimal = Field(default=Decimal("1"), description="Quantity (>= 0)")
    cost: Decimal = Field(default=Decimal("0"), description="Unit cost, up to 4 decimals")
    discount: Decimal = Field(default=Decimal("0"), description="Line discount")
    tax_name1: str = Field(default="")
    tax_rate1: Decimal = Field(default=Decimal("0"))
    tax_name2: str = Field(default="")
    tax_rate2: Decimal = Field(default=Decimal("0"))
    tax_id: Optional[ProductTaxType] = Field(default=None, description="Product tax type")
    type_id: LineItemType = Field(default=LineItemType.PRODUCT)

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_non_negative(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("quantity must be a finite number")
        if value < 0:
            raise ValueError("quantity must not be negative")
        return value

    @field_validator("cost", "discount", "tax_rate1", "tax_rate2")
    @classmethod
    def must_be_finite(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("value must be a finite number")
        return value

    @field_validator("tax_name1", "tax_name2", mode="before")
    @classmethod
    def coerce_tax_name(cls, value):
        return "" if value is None else str(value)

    def taxes(self) -> list[tuple[str, Decimal]]:
        """(name, rate) pairs with a non-zero rate"""
        return [
            (name, rate)
            for name, rate in ((self.tax_name1, self.tax_rate1), (self.tax_name2, self.tax_rate2))
            if rate != 0
        ]

    def to_json(self) -> dict:
        return self.model_dump(mode="json")
