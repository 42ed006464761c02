"""
Tests for display helpers.
"""

from decimal import Decimal

import pytest
from storefront.domain.entities import calculate_totals
from storefront.helpers import format_price, summary_rows


@pytest.mark.parametrize(
    "amount,expected",
    [
        (Decimal("1270"), "₹1,270.00"),
        (127000, "₹1,27,000.00"),
        (100000, "₹1,00,000.00"),
        (Decimal("12345678.9"), "₹1,23,45,678.90"),
        (999, "₹999.00"),
        (0, "₹0.00"),
        ("180.005", "₹180.01"),
        (Decimal("17.9982"), "₹18.00"),
        (-50, "-₹50.00"),
    ],
)
def test_format_price(amount, expected) -> None:
    assert format_price(amount) == expected


@pytest.mark.parametrize("amount", [None, "abc", float("nan"), float("inf")])
def test_format_price_invalid_amount_is_zero(amount) -> None:
    """Non-numeric amounts render as zero instead of raising."""
    assert format_price(amount) == "₹0.00"


def test_summary_rows(cart_snapshot) -> None:
    rows = summary_rows(calculate_totals(cart_snapshot))

    assert rows == [
        ("Subtotal", "₹1,000.00"),
        ("Shipping", "₹90.00"),
        ("Tax (18%)", "₹180.00"),
        ("Total", "₹1,270.00"),
    ]
