"""
Utility functions for the TorunHut storefront
"""
import uuid
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

CATEGORY_ALIASES = {
    't-shirt': 'tshirt',
    't shirt': 'tshirt',
    'tshirt': 'tshirt',
    'hoodie': 'hoodie',
    'hoodies': 'hoodie',
    'jersey': 'jersey',
    'jerseys': 'jersey',
}


def to_money(value: Any) -> Decimal:
    """
    Convert a wire value (int, float, str or Decimal) to a Decimal.
    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}")


def quantize_money(value: Decimal) -> Decimal:
    """Round to whole cents, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Optional[Decimal]) -> str:
    """Two-decimal string used by exports and logs."""
    if value is None:
        value = Decimal('0')
    return f"{quantize_money(to_money(value)):.2f}"


def normalize_category(category: Optional[str]) -> str:
    """
    Map the spellings customers and admins type to the stored category slug.
    Unknown values pass through lower-cased.
    """
    if not category:
        return 'tshirt'
    lower = category.lower().strip()
    return CATEGORY_ALIASES.get(lower, lower)


def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    """Return the UUID for a string id, or None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        return None


def truncate_for_display(text: str, max_length: int = 100) -> str:
    """
    Truncate text for display purposes.
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."
