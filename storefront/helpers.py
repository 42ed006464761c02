"""
Helper functions for rendering checkout amounts.

This module contains display utilities shared by the checkout summary and
the order confirmation: currency formatting and order summary rows.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, List, Tuple

from .domain.entities import Totals

logger = logging.getLogger(__name__)

# Constants
CURRENCY_SYMBOL = "₹"
TWO_PLACES = Decimal("0.01")


def _to_decimal(amount: Any) -> Decimal:
    if amount is None:
        return Decimal("0")
    if isinstance(amount, Decimal):
        value = amount
    else:
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            logger.debug(f"Cannot format non-numeric amount: {amount!r}")
            return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return value


def _group_indian(digits: str) -> str:
    """Group an integer digit string as lakh/crore: 12,34,567."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_price(amount: Any) -> str:
    """
    Format an amount as Indian rupees.

    Rounds half-up to two decimal places and groups digits the Indian way
    (thousands, then lakhs and crores in pairs). Missing or non-numeric
    amounts render as zero.

    Args:
        amount: Decimal, int, float or numeric string

    Returns:
        Formatted price string

    Examples:
        >>> format_price(Decimal("1270"))
        '₹1,270.00'
        >>> format_price(127000)
        '₹1,27,000.00'
        >>> format_price(None)
        '₹0.00'
    """
    value = _to_decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    integer_part, fraction_part = f"{abs(value):.2f}".split(".")
    return f"{sign}{CURRENCY_SYMBOL}{_group_indian(integer_part)}.{fraction_part}"


def summary_rows(totals: Totals) -> List[Tuple[str, str]]:
    """
    Label/amount rows of the order summary panel.

    Args:
        totals: Computed checkout totals

    Returns:
        Rows in display order, amounts already formatted
    """
    return [
        ("Subtotal", format_price(totals.subtotal)),
        ("Shipping", format_price(totals.shipping)),
        ("Tax (18%)", format_price(totals.tax)),
        ("Total", format_price(totals.total)),
    ]
