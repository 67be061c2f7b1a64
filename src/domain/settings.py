"""Settings cascade

Client settings override group settings, which override company settings,
which override the built-in defaults. None and empty strings are treated as
"not set" at every level.
"""

from typing import Any, Mapping, Optional

COMPANY_SETTING_DEFAULTS: dict[str, Any] = {
    "currency": "EUR",
    "use_credits_payment": "always",  # always | option | off
    "auto_bill": "off",               # always | optout | optin | off
    "inclusive_taxes": False,
    "late_fee_amount1": 0,
    "late_fee_percent1": 0,
    "late_fee_amount2": 0,
    "late_fee_percent2": 0,
    "late_fee_amount3": 0,
    "late_fee_percent3": 0,
}


def _lookup(settings: Optional[Mapping[str, Any]], key: str) -> Any:
    if not settings:
        return None
    value = settings.get(key)
    if value is None or value == "":
        return None
    return value


def resolve_setting(key: str, client=None, group=None, company=None) -> Any:
    """
    Resolve a setting for a client

    Args:
        key: Setting name
        client: Object with a `settings` mapping (Client) or None
        group: Object with a `settings` mapping (GroupSetting) or None
        company: Object with a `settings` mapping (Company) or None

    Returns:
        The first value found in client, group, company, defaults order

    Raises:
        KeyError: The key is unknown at every level
    """
    for level in (client, group, company):
        value = _lookup(getattr(level, "settings", None), key)
        if value is not None:
            return value

    if key in COMPANY_SETTING_DEFAULTS:
        return COMPANY_SETTING_DEFAULTS[key]

    raise KeyError(f"Unknown setting {key}")
