"""Sustainability scoring engine - core business logic for funding need

Higher scores mean LESS need for community support. A package starts at a
neutral 50; funding signals push it up, bus-factor and abandonment signals
pull it down, and widely used packages without funding get an extra push
towards critical.
"""

import math
from typing import Dict, List, Optional

from support_oss.domain.models import (
    Category,
    DEFAULT_WEIGHTS,
    ScoringFactor,
    ScoringInputs,
    ScoringResult,
    ScoringWeights,
)

BASE_SCORE = 50
MAX_EXPLANATION_REASONS = 3

# Fixed scores when the maintainer reports their own status
MAINTAINER_STATUS_SCORES: Dict[Category, int] = {
    Category.CRITICAL: 15,
    Category.NEEDS_SUPPORT: 40,
    Category.STABLE: 65,
    Category.THRIVING: 85,
    Category.CORPORATE: 95,
}

CORPORATE_SCORE = 95

# Upper bound (inclusive) of each category; anything above thriving is corporate
CATEGORY_THRESHOLDS = [
    (30, Category.CRITICAL),
    (50, Category.NEEDS_SUPPORT),
    (75, Category.STABLE),
    (90, Category.THRIVING),
]

# Ecosystem importance penalty
IMPORTANCE_DOWNLOADS_SHARE = 0.6
IMPORTANCE_DEPENDENTS_SHARE = 0.4
IMPORTANCE_THRESHOLD = 0.3
IMPORTANCE_SCORE_CEILING = 60
IMPORTANCE_PENALTY_SCALE = 15

# Inactivity penalty starts after a year and saturates two years later
INACTIVITY_GRACE_DAYS = 365
INACTIVITY_SATURATION_DAYS = 730


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with ties going up (2.5 -> 3), unlike Python's banker's rounding"""
    scale = 10**digits
    scaled = value * scale
    # Past 2**52 every float is already a whole number at this precision
    if not math.isfinite(scaled) or abs(scaled) >= 2**52:
        return value
    return math.floor(scaled + 0.5) / scale


def normalize_downloads(downloads: Optional[int]) -> float:
    """Log scale: 1M weekly downloads ~0.67, 100M ~0.89, capped at 1.0"""
    if not downloads:
        return 0.0
    return min(1.0, math.log10(downloads + 1) / 9)


def normalize_dependents(dependents: Optional[int]) -> float:
    """Log scale: 100 dependents ~0.5, 1000 ~0.75, 10000+ = 1.0"""
    if not dependents:
        return 0.0
    return min(1.0, math.log10(dependents + 1) / 4)


def normalize_balance(balance: Optional[float]) -> float:
    """Linear up to $100k"""
    if not balance:
        return 0.0
    return min(1.0, balance / 100_000)


def normalize_income(income: Optional[float]) -> float:
    """Linear up to $100k/year"""
    if not income:
        return 0.0
    return min(1.0, income / 100_000)


def determine_category(score: int) -> Category:
    """Map a clamped score onto its category band"""
    for upper, category in CATEGORY_THRESHOLDS:
        if score <= upper:
            return category
    return Category.CORPORATE


def build_explanation(factors: List[ScoringFactor]) -> List[str]:
    """Reasons of the highest-impact factors; ties keep evaluation order"""
    ranked = sorted(factors, key=lambda f: abs(f.impact), reverse=True)
    return [f.reason for f in ranked[:MAX_EXPLANATION_REASONS]]


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def _maintainer_status_result(status: Category) -> ScoringResult:
    return ScoringResult(
        score=MAINTAINER_STATUS_SCORES[status],
        category=status,
        explanation=["Score based on maintainer self-reported status"],
        factors=[
            ScoringFactor(
                name="Maintainer Status",
                impact=0,
                reason=f'Maintainer marked as "{status.value}"',
            )
        ],
    )


def _corporate_result(company: str, weights: ScoringWeights) -> ScoringResult:
    return ScoringResult(
        score=CORPORATE_SCORE,
        category=Category.CORPORATE,
        explanation=[f"Backed by {company} - does not need community funding"],
        factors=[
            ScoringFactor(
                name="Corporate Backing",
                impact=weights.corporate_backing,
                reason=f"Maintained by {company}",
            )
        ],
    )


def calculate_score(inputs: ScoringInputs, weights: ScoringWeights = DEFAULT_WEIGHTS) -> ScoringResult:
    """
    Calculate the sustainability score (0-100, lower = needs more support).

    Evaluation order:
    1. Maintainer self-reported status wins outright
    2. Corporate backing short-circuits to 95 / corporate
    3. Weighted factors on top of a neutral 50
    4. Ecosystem importance penalty for popular, underfunded packages
    5. Clamp, round, categorize, explain

    Downloads and dependents are recorded as factors but only reach the
    score through the importance penalty.
    """
    if inputs.maintainer_status is not None:
        return _maintainer_status_result(inputs.maintainer_status)

    if inputs.corporate_backing:
        return _corporate_result(inputs.corporate_backing, weights)

    factors: List[ScoringFactor] = []
    score = float(BASE_SCORE)

    # Ecosystem importance: informational here, folded into the penalty below
    downloads_factor = normalize_downloads(inputs.weekly_downloads)
    if downloads_factor > 0:
        factors.append(
            ScoringFactor(
                name="Weekly Downloads",
                impact=-downloads_factor * weights.downloads,
                reason=f"{_format_number(inputs.weekly_downloads or 0)} weekly downloads",
            )
        )

    dependents_factor = normalize_dependents(inputs.dependent_count)
    if dependents_factor > 0:
        factors.append(
            ScoringFactor(
                name="Dependent Packages",
                impact=-dependents_factor * weights.dependents,
                reason=f"{_format_number(inputs.dependent_count or 0)} packages depend on this",
            )
        )

    # Funding health
    balance_factor = normalize_balance(inputs.oc_balance)
    if balance_factor > 0:
        impact = balance_factor * weights.oc_balance
        factors.append(
            ScoringFactor(
                name="OC Balance",
                impact=impact,
                reason=f"${_format_number(inputs.oc_balance or 0)} in OpenCollective",
            )
        )
        score += impact

    income_factor = normalize_income(inputs.oc_yearly_income)
    if income_factor > 0:
        impact = income_factor * weights.oc_income
        factors.append(
            ScoringFactor(
                name="OC Income",
                impact=impact,
                reason=f"${_format_number(inputs.oc_yearly_income or 0)}/year from OpenCollective",
            )
        )
        score += impact

    if inputs.github_sponsors_enabled:
        factors.append(
            ScoringFactor(
                name="GitHub Sponsors",
                impact=weights.github_sponsors,
                reason="Has GitHub Sponsors enabled",
            )
        )
        score += weights.github_sponsors

    # Bus factor: absent or zero maintainers means no data, not a penalty
    maintainers = inputs.maintainer_count
    if maintainers and maintainers > 1:
        bonus = min(1.0, (maintainers - 1) / 4) * weights.maintainer_count
        factors.append(
            ScoringFactor(
                name="Maintainer Count",
                impact=bonus,
                reason=f"{maintainers} maintainers (lower bus factor)",
            )
        )
        score += bonus
    elif maintainers == 1:
        penalty = weights.maintainer_count / 2
        factors.append(
            ScoringFactor(
                name="Solo Maintainer",
                impact=-penalty,
                reason="Single maintainer (bus factor risk)",
            )
        )
        score -= penalty

    days = inputs.days_since_last_publish
    if days and days > INACTIVITY_GRACE_DAYS:
        penalty = min(1.0, (days - INACTIVITY_GRACE_DAYS) / INACTIVITY_SATURATION_DAYS) * weights.activity_penalty
        factors.append(
            ScoringFactor(
                name="Inactivity",
                impact=-penalty,
                reason=f"No releases in {days // 365} years",
            )
        )
        score -= penalty

    if inputs.ai_disruption_flag:
        factors.append(
            ScoringFactor(
                name="AI Disruption",
                impact=-weights.ai_disruption,
                reason="Business model at risk from AI tools",
            )
        )
        score -= weights.ai_disruption

    # High impact packages that are still underfunded get pulled towards critical
    importance = downloads_factor * IMPORTANCE_DOWNLOADS_SHARE + dependents_factor * IMPORTANCE_DEPENDENTS_SHARE
    if importance > IMPORTANCE_THRESHOLD and score < IMPORTANCE_SCORE_CEILING:
        penalty = importance * IMPORTANCE_PENALTY_SCALE
        score -= penalty
        factors.append(
            ScoringFactor(
                name="High Impact, Low Funding",
                impact=-penalty,
                reason="Critical infrastructure without adequate funding",
            )
        )

    final_score = int(round_half_up(max(0.0, min(100.0, score))))

    return ScoringResult(
        score=final_score,
        category=determine_category(final_score),
        explanation=build_explanation(factors),
        factors=factors,
    )
