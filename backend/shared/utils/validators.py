"""
Shared validators for input sanitization.
"""

import re
from decimal import Decimal, ROUND_HALF_UP

# Stock quantities carry three fractional digits (grams of a kilogram, ...)
STOCK_QUANTUM = Decimal("0.001")


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. This function escapes them
    to prevent pattern injection that could cause full table scans.
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_search_term(term: str | None, max_length: int = 100) -> str:
    """
    Sanitize search term for safe use in queries.

    Args:
        term: The search term to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized search term
    """
    if not term:
        return ""

    term = term.strip()[:max_length]

    # Remove null bytes and other control characters
    return re.sub(r"[\x00-\x1f\x7f-\x9f]", "", term)


def quantize_stock(value: Decimal | int | str) -> Decimal:
    """Normalize a stock quantity to three decimal places."""
    return Decimal(value).quantize(STOCK_QUANTUM, rounding=ROUND_HALF_UP)


def round_cents(value: Decimal) -> int:
    """Round a monetary amount in cents half-up to an integer."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
