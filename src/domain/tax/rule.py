"""Tax Rule Provider

Resolves the tax rate applied to a line item from the seller's region
profile, the client's tax profile and the product tax type.

Region resolution is a strict priority list; the first matching case wins:

1. client is tax exempt                                   -> 0%
2. other EU member state, valid VAT number, B2B exemption  -> 0%
3. outside the EU with a foreign exemption enabled         -> 0%
4. EU member state without a valid VAT number              -> destination rate when
                                                              the seller is above the
                                                              sales threshold, otherwise
                                                              the seller's own rate
5. everything else                                         -> seller's own rate

tax_by_type() then picks (name, rate) from the computed standard and
reduced rates without re-running region resolution.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from src.domain.line_item import ProductTaxType

ZERO = Decimal("0")

EU_COUNTRY_CODES = frozenset({
    "AT", "BE", "BG", "CY", "CZ", "DE", "DK", "EE", "ES", "FI", "FR", "GR", "HR", "HU",
    "IE", "IT", "LT", "LU", "LV", "MT", "NL", "PL", "PT", "RO", "SE", "SI", "SK",
})


class SubregionRate(BaseModel):
    tax_rate: Decimal = ZERO
    reduced_tax_rate: Decimal = ZERO


# Standard / reduced VAT rates per member state
DEFAULT_EU_RATES: Dict[str, SubregionRate] = {
    code: SubregionRate(tax_rate=Decimal(standard), reduced_tax_rate=Decimal(reduced))
    for code, standard, reduced in (
        ("AT", "20", "10"), ("BE", "21", "6"), ("BG", "20", "9"), ("CY", "19", "5"),
        ("CZ", "21", "12"), ("DE", "19", "7"), ("DK", "25", "0"), ("EE", "22", "9"),
        ("ES", "21", "10"), ("FI", "24", "14"), ("FR", "20", "5.5"), ("GR", "24", "13"),
        ("HR", "25", "13"), ("HU", "27", "5"), ("IE", "23", "13.5"), ("IT", "22", "10"),
        ("LT", "21", "9"), ("LU", "17", "8"), ("LV", "21", "12"), ("MT", "18", "7"),
        ("NL", "21", "9"), ("PL", "23", "8"), ("PT", "23", "13"), ("RO", "19", "9"),
        ("SE", "25", "12"), ("SI", "22", "9.5"), ("SK", "20", "10"),
    )
}


class RegionProfile(BaseModel):
    has_sales_above_threshold: bool = False
    subregions: Dict[str, SubregionRate] = Field(default_factory=lambda: dict(DEFAULT_EU_RATES))


class SellerRegionProfile(BaseModel):
    """Seller side of the tax decision, stored as Company.tax_data"""

    seller_region: str = "EU"
    seller_subregion: str = "DE"
    consumer_tax_exempt: bool = False
    business_tax_exempt: bool = False
    eu_business_tax_exempt: bool = True
    foreign_business_tax_exempt: bool = True
    foreign_consumer_tax_exempt: bool = True
    regions: Dict[str, RegionProfile] = Field(default_factory=lambda: {"EU": RegionProfile()})

    def subregion_rate(self, subregion: str) -> SubregionRate:
        region = self.regions.get(self.seller_region) or RegionProfile()
        return region.subregions.get(subregion) or DEFAULT_EU_RATES.get(subregion) or SubregionRate()

    def above_threshold(self) -> bool:
        region = self.regions.get(self.seller_region)
        return bool(region and region.has_sales_above_threshold)


class ClientTaxProfile(BaseModel):
    """Buyer side of the tax decision"""

    country_code: str
    is_tax_exempt: bool = False
    has_valid_vat_number: bool = False


class TaxRateSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    tax_name1: str = ""
    tax_rate1: Decimal = ZERO
    tax_name2: str = ""
    tax_rate2: Decimal = ZERO


class TaxRuleProvider(ABC):
    """Tax rules of one seller jurisdiction"""

    standard_tax_name: str = ""
    reduced_tax_name: str = ""

    def __init__(self, seller: SellerRegionProfile, client: ClientTaxProfile):
        self.seller = seller
        self.client = client
        self.tax_rate = ZERO
        self.reduced_tax_rate = ZERO

    def init(self) -> "TaxRuleProvider":
        self.calculate_rates()
        return self

    @abstractmethod
    def calculate_rates(self) -> "TaxRuleProvider":
        """Compute tax_rate and reduced_tax_rate for the client's location"""
        pass

    def tax_by_type(
        self, product_tax_type: Optional[ProductTaxType], current: Optional[TaxRateSet] = None
    ) -> TaxRateSet:
        """Pick the (name, rate) pair applied to a product of the given type"""
        if self.client.is_tax_exempt:
            return self.tax_exempt()

        if product_tax_type in (
            ProductTaxType.PHYSICAL,
            ProductTaxType.SERVICE,
            ProductTaxType.DIGITAL,
            ProductTaxType.SHIPPING,
        ):
            return self.tax_standard()
        if product_tax_type == ProductTaxType.EXEMPT:
            return self.tax_exempt()
        if product_tax_type == ProductTaxType.REDUCED_TAX:
            return self.tax_reduced()
        if product_tax_type == ProductTaxType.OVERRIDE_TAX:
            return current or TaxRateSet()
        return self.default()

    def tax_standard(self) -> TaxRateSet:
        return TaxRateSet(tax_name1=self.standard_tax_name, tax_rate1=self.tax_rate)

    def tax_reduced(self) -> TaxRateSet:
        return TaxRateSet(tax_name1=self.reduced_tax_name, tax_rate1=self.reduced_tax_rate)

    def tax_exempt(self) -> TaxRateSet:
        return TaxRateSet()

    def default(self) -> TaxRateSet:
        return TaxRateSet()


class EURule(TaxRuleProvider):
    """Shared rules for sellers located in an EU member state"""

    region_codes = EU_COUNTRY_CODES

    def calculate_rates(self) -> "EURule":
        seller = self.seller
        client = self.client
        subregion = client.country_code.upper()
        in_region = subregion in self.region_codes

        if client.is_tax_exempt:
            self._set_rates(None)
        elif (
            subregion != seller.seller_subregion
            and in_region
            and client.has_valid_vat_number
            and seller.eu_business_tax_exempt
        ):
            self._set_rates(None)
        elif not in_region and (seller.foreign_consumer_tax_exempt or seller.foreign_business_tax_exempt):
            self._set_rates(None)
        elif in_region and not client.has_valid_vat_number:
            if subregion != seller.seller_subregion and seller.above_threshold():
                self._set_rates(seller.subregion_rate(subregion))
            else:
                self._set_rates(seller.subregion_rate(seller.seller_subregion))
        else:
            self._set_rates(seller.subregion_rate(seller.seller_subregion))

        return self

    def _set_rates(self, rates: Optional[SubregionRate]) -> None:
        if rates is None:
            self.tax_rate = ZERO
            self.reduced_tax_rate = ZERO
        else:
            self.tax_rate = rates.tax_rate
            self.reduced_tax_rate = rates.reduced_tax_rate
