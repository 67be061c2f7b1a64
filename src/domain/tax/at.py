"""Austrian seller tax rules"""

from src.domain.tax.rule import EURule


class ATRule(EURule):
    standard_tax_name = "USt."
    reduced_tax_name = "ermäßigte USt."
