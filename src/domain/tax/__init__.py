"""Tax rule engine

One TaxRuleProvider variant per supported seller jurisdiction. New
jurisdictions are added to RULE_PROVIDERS.
"""

from enum import Enum
from typing import Dict, Optional, Type

from src.domain.line_item import ProductTaxType
from .rule import (
    ClientTaxProfile,
    EURule,
    RegionProfile,
    SellerRegionProfile,
    SubregionRate,
    TaxRateSet,
    TaxRuleProvider,
    DEFAULT_EU_RATES,
    EU_COUNTRY_CODES,
)
from .de import DERule
from .at import ATRule


class Jurisdiction(str, Enum):
    """Seller jurisdictions with tax rules"""
    DE = "DE"
    AT = "AT"


RULE_PROVIDERS: Dict[Jurisdiction, Type[TaxRuleProvider]] = {
    Jurisdiction.DE: DERule,
    Jurisdiction.AT: ATRule,
}


def get_rule_provider(
    jurisdiction: Jurisdiction, seller: SellerRegionProfile, client: ClientTaxProfile
) -> TaxRuleProvider:
    return RULE_PROVIDERS[Jurisdiction(jurisdiction)](seller, client).init()


def resolve(
    jurisdiction: Jurisdiction,
    seller: SellerRegionProfile,
    client: ClientTaxProfile,
    product_tax_type: Optional[ProductTaxType],
    current: Optional[TaxRateSet] = None,
) -> TaxRateSet:
    """Tax (name, rate) for one product sold by `seller` to `client`"""
    return get_rule_provider(jurisdiction, seller, client).tax_by_type(product_tax_type, current)


__all__ = [
    "ATRule",
    "ClientTaxProfile",
    "DERule",
    "DEFAULT_EU_RATES",
    "EURule",
    "EU_COUNTRY_CODES",
    "Jurisdiction",
    "RULE_PROVIDERS",
    "RegionProfile",
    "SellerRegionProfile",
    "SubregionRate",
    "TaxRateSet",
    "TaxRuleProvider",
    "get_rule_provider",
    "resolve",
]
