"""Helpers shared by the invoice use cases"""

from typing import List, Optional, Tuple

from src.app.repositories.company_repository import CompanyRepository
from src.domain.client import Client
from src.domain.company import Company
from src.domain.group_setting import GroupSetting
from src.domain.line_item import LineItem
from src.domain.tax import TaxRateSet, get_rule_provider

# Invoice header fields settable from commands
HEADER_FIELDS = (
    "discount",
    "is_amount_discount",
    "tax_name1",
    "tax_rate1",
    "tax_name2",
    "tax_rate2",
    "custom_surcharge1",
    "custom_surcharge2",
    "custom_surcharge3",
    "custom_surcharge4",
    "custom_surcharge_tax1",
    "custom_surcharge_tax2",
    "custom_surcharge_tax3",
    "custom_surcharge_tax4",
    "partial",
    "due_date",
)


async def load_setting_levels(
    company_repo: CompanyRepository, client: Client
) -> Tuple[Optional[GroupSetting], Optional[Company]]:
    """Group and company of a client, for resolve_setting()"""
    company = await company_repo.get_by_id(client.company_id)
    group = None
    if client.group_settings_id is not None:
        group = await company_repo.get_group_setting(client.group_settings_id)
    return group, company


def resolve_line_taxes(
    items: List[LineItem], company: Optional[Company], client: Client
) -> List[LineItem]:
    """
    Fill line item taxes from their product tax type

    Only applies when the company has calculate_taxes enabled; items
    without a product tax type keep their own rates.
    """
    if company is None or not company.calculate_taxes:
        return list(items)

    provider = get_rule_provider(company.jurisdiction, company.seller_profile(), client.tax_profile())

    resolved = []
    for item in items:
        if item.tax_id is None:
            resolved.append(item)
            continue
        current = TaxRateSet(
            tax_name1=item.tax_name1,
            tax_rate1=item.tax_rate1,
            tax_name2=item.tax_name2,
            tax_rate2=item.tax_rate2,
        )
        rates = provider.tax_by_type(item.tax_id, current)
        resolved.append(item.model_copy(update=rates.model_dump()))
    return resolved
