"""Campaign detection — maps a free-text product type to its rule set."""

from config.rules import SCRIPT_TEMPLATES
from config.schemas import Campaign, CampaignTemplate

_MEDICARE_PRODUCTS = {"MEDICARE", "WHATIF"}


def resolve_campaign(product_type) -> Campaign:
    """Normalize a product type. MEDICARE and WHATIF → MEDICARE, anything else → ACA."""
    if isinstance(product_type, str) and product_type.strip().upper() in _MEDICARE_PRODUCTS:
        return Campaign.MEDICARE
    return Campaign.ACA


def get_script_template(product_type) -> CampaignTemplate:
    """Template for a product type or Campaign; unknown values get the ACA template."""
    if isinstance(product_type, Campaign):
        return SCRIPT_TEMPLATES[product_type.value]
    return SCRIPT_TEMPLATES[resolve_campaign(product_type).value]
