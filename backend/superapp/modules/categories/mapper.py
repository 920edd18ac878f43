"""
Plaid category normalization.

Plaid tags each transaction with a hierarchy such as
["Food and Drink", "Restaurants", "Coffee Shop"]. Only the most general
element decides the internal category; the most specific one is kept as the
subcategory.
"""

from typing import Optional, Sequence

DEFAULT_CATEGORY = "Other"

# Plaid primary category -> internal category
PLAID_CATEGORY_MAP = {
    "Food and Drink": "Food & Dining",
    "Shops": "Shopping",
    "Recreation": "Entertainment",
    "Transportation": "Transportation",
    "Healthcare": "Healthcare",
    "Service": "Services",
    "Community": "Community",
    "Government and Non-Profit": "Government",
    "Travel": "Travel",
    "Bank Fees": "Fees",
    "Interest": "Income",
    "Deposit": "Income",
    "Payroll": "Income",
    "Transfer": "Transfer",
}

# Category colors for UI
CATEGORY_COLORS = {
    "Food & Dining": "#e53e3e",
    "Shopping": "#d69e2e",
    "Transportation": "#3182ce",
    "Entertainment": "#805ad5",
    "Healthcare": "#38a169",
    "Services": "#319795",
    "Income": "#48bb78",
    "Transfer": "#718096",
    "Fees": "#f56565",
    "Other": "#a0aec0",
}

CATEGORY_ICONS = {
    "Food & Dining": "utensils",
    "Shopping": "shopping-bag",
    "Transportation": "car",
    "Entertainment": "film",
    "Healthcare": "heart",
    "Services": "wrench",
    "Income": "dollar-sign",
    "Transfer": "exchange-alt",
    "Fees": "exclamation-triangle",
    "Other": "tag",
}

DEFAULT_COLOR = "#3182ce"
DEFAULT_ICON = "tag"


def _as_path(provider_category) -> list:
    if not provider_category or isinstance(provider_category, (str, bytes)):
        return []
    try:
        return [c for c in provider_category if isinstance(c, str) and c]
    except TypeError:
        return []


def map_provider_category(provider_category: Optional[Sequence[str]]) -> str:
    """
    Map a Plaid category path to the internal category label.

    Total: empty, missing or malformed input maps to "Other".
    """
    path = _as_path(provider_category)
    if not path:
        return DEFAULT_CATEGORY
    return PLAID_CATEGORY_MAP.get(path[0], DEFAULT_CATEGORY)


def provider_subcategory(provider_category: Optional[Sequence[str]]) -> Optional[str]:
    """Most specific raw Plaid label, kept alongside the normalized category."""
    path = _as_path(provider_category)
    return path[-1] if path else None


def category_color(category: str) -> str:
    return CATEGORY_COLORS.get(category, DEFAULT_COLOR)


def category_icon(category: str) -> str:
    return CATEGORY_ICONS.get(category, DEFAULT_ICON)
