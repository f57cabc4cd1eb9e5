"""Bucketed currency labels for displaying funding amounts without exact figures"""

import math
from typing import List, Optional, Tuple

# (lower bound inclusive, upper bound exclusive, label)
AMOUNT_RANGES: List[Tuple[float, float, str]] = [
    (0, 100, "<$100"),
    (100, 500, "$100-500"),
    (500, 1_000, "$500-1K"),
    (1_000, 5_000, "$1K-5K"),
    (5_000, 10_000, "$5K-10K"),
    (10_000, 25_000, "$10K-25K"),
    (25_000, 50_000, "$25K-50K"),
    (50_000, 100_000, "$50K-100K"),
    (100_000, 250_000, "$100K-250K"),
    (250_000, 500_000, "$250K-500K"),
    (500_000, 1_000_000, "$500K-1M"),
    (1_000_000, math.inf, ">$1M"),
]


def format_amount_range(amount: Optional[float]) -> Optional[str]:
    """
    Map a dollar amount onto its range label.

    Returns None for missing, zero or negative amounts.

    Example:
        1234 -> "$1K-5K"
        1000000 -> ">$1M"
    """
    if amount is None or amount <= 0:
        return None

    for lower, upper, label in AMOUNT_RANGES:
        if lower <= amount < upper:
            return label

    return AMOUNT_RANGES[-1][2]


def format_monthly_range(yearly_amount: Optional[float]) -> Optional[str]:
    """Format a yearly amount as a monthly range with "/mo" suffix"""
    if yearly_amount is None or yearly_amount <= 0:
        return None

    label = format_amount_range(yearly_amount / 12)
    return f"{label}/mo" if label else None
