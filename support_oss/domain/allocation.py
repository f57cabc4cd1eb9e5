"""Split a donation budget across packages in inverse proportion to their scores"""

import math
from typing import Iterable, List

from support_oss.domain.exceptions import InvalidBudgetError
from support_oss.domain.models import AllocationInput, AllocationOutput, Category
from support_oss.domain.scoring import round_half_up

THRIVING_WEIGHT = 0.1


def allocation_weight(pkg: AllocationInput) -> float:
    """
    Relative share of the budget before normalization.

    - corporate: 0 (does not need community money)
    - thriving: flat 0.1, regardless of the numeric score
    - otherwise: 100 - score (score 0 -> 100, score 50 -> 50)
    """
    if pkg.category == Category.CORPORATE:
        return 0.0
    if pkg.category == Category.THRIVING:
        return THRIVING_WEIGHT
    return float(max(0, 100 - pkg.score))


def calculate_allocation(packages: Iterable[AllocationInput], budget: float) -> List[AllocationOutput]:
    """
    Suggest a dollar amount per package.

    The total weight normalizes over the whole set, so the complete list is
    materialized before any share is computed. Output is aligned 1:1 with
    the input order. A set with no weight (e.g. all corporate) gets zeros.

    Raises:
        InvalidBudgetError: If budget is negative, infinite or NaN
    """
    if not math.isfinite(budget):
        raise InvalidBudgetError(f"Budget must be a finite number, got {budget}")
    if budget < 0:
        raise InvalidBudgetError(f"Budget must be non-negative, got {budget}")

    packages = list(packages)
    weights = [allocation_weight(pkg) for pkg in packages]
    total_weight = sum(weights)

    if total_weight == 0:
        return [
            AllocationOutput(package_name=pkg.package_name, percentage=0.0, suggested_amount=0.0)
            for pkg in packages
        ]

    return [
        AllocationOutput(
            package_name=pkg.package_name,
            percentage=round_half_up(weight / total_weight * 100, 1),
            suggested_amount=round_half_up(weight / total_weight * budget, 2),
        )
        for pkg, weight in zip(packages, weights)
    ]
