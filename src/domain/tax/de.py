"""German seller tax rules"""

from src.domain.tax.rule import EURule


class DERule(EURule):
    standard_tax_name = "MwSt."
    reduced_tax_name = "ermäßigte MwSt."
