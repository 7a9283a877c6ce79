# Pricing category names - static mapping of provider category ids.
# Created: 2026-10-05

from __future__ import annotations

PRICING_CATEGORY_NAMES: dict[str, str] = {
    "1001055": "Adult",
    "1001057": "Child",
}


def category_name(category_id: str | int) -> str:
    """Display name for a pricing category; unknown ids get a generic label."""
    key = str(category_id)
    return PRICING_CATEGORY_NAMES.get(key, f"Category {key}")
