"""Unit tests for the tax rule engine"""

import pytest
from decimal import Decimal
from src.domain.line_item import ProductTaxType
from src.domain.tax import (
    ATRule,
    ClientTaxProfile,
    DERule,
    Jurisdiction,
    RegionProfile,
    SellerRegionProfile,
    SubregionRate,
    TaxRateSet,
    get_rule_provider,
    resolve,
)


@pytest.fixture
def german_seller():
    return SellerRegionProfile(seller_region="EU", seller_subregion="DE")


class TestRegionResolution:
    """Priority order of the region rules"""

    def test_domestic_consumer_pays_seller_rate(self, german_seller):
        # Arrange
        client = ClientTaxProfile(country_code="DE")

        # Act
        rule = DERule(german_seller, client).init()

        # Assert
        assert rule.tax_rate == Decimal("19")
        assert rule.reduced_tax_rate == Decimal("7")

    def test_tax_exempt_client_pays_nothing(self, german_seller):
        client = ClientTaxProfile(country_code="DE", is_tax_exempt=True)

        rule = DERule(german_seller, client).init()

        assert rule.tax_rate == Decimal("0")
        assert rule.tax_by_type(ProductTaxType.PHYSICAL) == TaxRateSet()

    def test_eu_business_with_valid_vat_number_is_exempt(self, german_seller):
        """
        Given: A French business client with a valid VAT number
        When: Rates are calculated for a German seller with B2B exemption
        Then: Reverse charge applies and the rate is 0
        """
        # Arrange
        client = ClientTaxProfile(country_code="FR", has_valid_vat_number=True)

        # Act
        rule = DERule(german_seller, client).init()

        # Assert
        assert rule.tax_rate == Decimal("0")

    def test_eu_consumer_below_threshold_pays_seller_rate(self, german_seller):
        client = ClientTaxProfile(country_code="FR")

        rule = DERule(german_seller, client).init()

        assert rule.tax_rate == Decimal("19")

    def test_eu_consumer_above_threshold_pays_destination_rate(self):
        # Arrange
        seller = SellerRegionProfile(
            seller_subregion="DE",
            regions={"EU": RegionProfile(has_sales_above_threshold=True)},
        )
        client = ClientTaxProfile(country_code="FR")

        # Act
        rule = DERule(seller, client).init()

        # Assert
        assert rule.tax_rate == Decimal("20")
        assert rule.reduced_tax_rate == Decimal("5.5")

    def test_foreign_client_is_exempt(self, german_seller):
        client = ClientTaxProfile(country_code="US")

        rule = DERule(german_seller, client).init()

        assert rule.tax_rate == Decimal("0")

    def test_foreign_client_without_exemption_pays_seller_rate(self):
        # Arrange
        seller = SellerRegionProfile(
            seller_subregion="DE",
            foreign_business_tax_exempt=False,
            foreign_consumer_tax_exempt=False,
        )
        client = ClientTaxProfile(country_code="US")

        # Act
        rule = DERule(seller, client).init()

        # Assert
        assert rule.tax_rate == Decimal("19")

    def test_subregion_rates_are_overridable(self):
        # Arrange
        seller = SellerRegionProfile(
            seller_subregion="DE",
            regions={
                "EU": RegionProfile(
                    subregions={"DE": SubregionRate(tax_rate=Decimal("16"), reduced_tax_rate=Decimal("5"))}
                )
            },
        )

        # Act
        rule = DERule(seller, ClientTaxProfile(country_code="DE")).init()

        # Assert
        assert rule.tax_rate == Decimal("16")
        assert rule.reduced_tax_rate == Decimal("5")


class TestTaxByType:
    """Picking (name, rate) for a product tax type"""

    @pytest.fixture
    def rule(self, german_seller):
        return DERule(german_seller, ClientTaxProfile(country_code="DE")).init()

    @pytest.mark.parametrize(
        "product_tax_type",
        [ProductTaxType.PHYSICAL, ProductTaxType.SERVICE, ProductTaxType.DIGITAL, ProductTaxType.SHIPPING],
    )
    def test_standard_types(self, rule, product_tax_type):
        assert rule.tax_by_type(product_tax_type) == TaxRateSet(tax_name1="MwSt.", tax_rate1=Decimal("19"))

    def test_reduced_type(self, rule):
        assert rule.tax_by_type(ProductTaxType.REDUCED_TAX) == TaxRateSet(
            tax_name1="ermäßigte MwSt.", tax_rate1=Decimal("7")
        )

    def test_exempt_type(self, rule):
        assert rule.tax_by_type(ProductTaxType.EXEMPT) == TaxRateSet()

    def test_override_keeps_current_rates(self, rule):
        current = TaxRateSet(tax_name1="Custom", tax_rate1=Decimal("3"))

        assert rule.tax_by_type(ProductTaxType.OVERRIDE_TAX, current) == current

    def test_missing_type_falls_back_to_default(self, rule):
        assert rule.tax_by_type(None) == TaxRateSet()


class TestJurisdictions:
    def test_registry_selects_variant(self, german_seller):
        client = ClientTaxProfile(country_code="DE")

        assert isinstance(get_rule_provider(Jurisdiction.DE, german_seller, client), DERule)
        assert isinstance(get_rule_provider(Jurisdiction.AT, german_seller, client), ATRule)

    def test_austrian_seller_names_and_rates(self):
        # Arrange
        seller = SellerRegionProfile(seller_subregion="AT")
        client = ClientTaxProfile(country_code="AT")

        # Act
        rates = resolve(Jurisdiction.AT, seller, client, ProductTaxType.SERVICE)

        # Assert
        assert rates.tax_name1 == "USt."
        assert rates.tax_rate1 == Decimal("20")

    def test_unknown_jurisdiction_rejected(self, german_seller):
        with pytest.raises(ValueError):
            resolve("XX", german_seller, ClientTaxProfile(country_code="DE"), ProductTaxType.SERVICE)
