"""Dependency analysis - scores every requested package and splits the budget"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from support_oss.domain.allocation import calculate_allocation
from support_oss.domain.funding import build_funding_summary
from support_oss.domain.models import (
    AllocationInput,
    AnalysisSummary,
    AnalyzedPackage,
    Category,
    DEFAULT_WEIGHTS,
    DependencyAnalysis,
    FundingSummary,
    PackageRecord,
    ScoringInputs,
    ScoringResult,
    ScoringWeights,
)
from support_oss.domain.scoring import calculate_score
from support_oss.utils.date_utils import days_since

# Shown for packages we have no data on; "found" tells it apart from a real 50
UNKNOWN_PACKAGE_SCORE = 50
UNKNOWN_PACKAGE_CATEGORY = Category.STABLE

TOP_SPONSORS_LIMIT = 3


def scoring_inputs_from_record(record: PackageRecord, now: Optional[datetime] = None) -> ScoringInputs:
    """Translate stored package signals into scoring inputs"""
    return ScoringInputs(
        weekly_downloads=record.weekly_downloads,
        dependent_count=record.dependent_count,
        oc_balance=record.funding.oc_balance,
        oc_yearly_income=record.funding.oc_yearly_income,
        github_sponsors_enabled=record.funding.gh_has_sponsors_listing,
        corporate_backing=record.corporate_backing,
        maintainer_count=record.maintainer_count,
        days_since_last_publish=days_since(record.last_publish, now),
        ai_disruption_flag=record.ai_disruption_flag,
        maintainer_status=record.maintainer_status,
    )


def score_record(
    record: PackageRecord,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    now: Optional[datetime] = None,
) -> ScoringResult:
    return calculate_score(scoring_inputs_from_record(record, now), weights)


def funding_summary_for_display(record: PackageRecord) -> Optional[FundingSummary]:
    """Funding summary with the sponsor list cut down to the top few"""
    summary = build_funding_summary(record.funding)
    if summary is None:
        return None
    return replace(summary, top_sponsors=summary.top_sponsors[:TOP_SPONSORS_LIMIT])


def _analyze_one(
    name: str,
    version: Optional[str],
    record: Optional[PackageRecord],
    weights: ScoringWeights,
    now: Optional[datetime],
) -> AnalyzedPackage:
    if record is None:
        return AnalyzedPackage(
            name=name,
            version=version,
            found=False,
            score=UNKNOWN_PACKAGE_SCORE,
            category=UNKNOWN_PACKAGE_CATEGORY,
        )

    result = score_record(record, weights, now)
    return AnalyzedPackage(
        name=name,
        version=version,
        found=True,
        score=result.score,
        category=result.category,
        explanation=result.explanation,
        factors=result.factors,
        record=record,
        funding=funding_summary_for_display(record),
    )


def summarize(packages: List[AnalyzedPackage]) -> AnalysisSummary:
    by_category: Dict[str, int] = {category.value: 0 for category in Category}
    for pkg in packages:
        by_category[pkg.category.value] += 1

    found = sum(1 for pkg in packages if pkg.found)
    return AnalysisSummary(
        total=len(packages),
        found=found,
        not_found=len(packages) - found,
        by_category=by_category,
    )


def analyze_dependencies(
    requested: Mapping[str, Optional[str]],
    records: Mapping[str, PackageRecord],
    budget: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    now: Optional[datetime] = None,
) -> DependencyAnalysis:
    """
    Score every requested dependency and allocate the budget across them.

    Args:
        requested: Package name -> version range, in request order
        records: Stored data for the packages we know about
        budget: Amount to split, in the configured currency
        weights: Scoring weights (whole set)
        now: Reference time for inactivity; defaults to the current time

    Returns:
        DependencyAnalysis with packages sorted by suggested amount (highest first)
    """
    analyzed = [
        _analyze_one(name, version, records.get(name), weights, now)
        for name, version in requested.items()
    ]

    # Allocation needs the complete scored set before any share is known
    allocations = calculate_allocation(
        [AllocationInput(package_name=p.name, score=p.score, category=p.category) for p in analyzed],
        budget,
    )
    with_allocation = [replace(pkg, allocation=alloc) for pkg, alloc in zip(analyzed, allocations)]

    with_allocation.sort(key=lambda p: p.allocation.suggested_amount if p.allocation else 0, reverse=True)

    return DependencyAnalysis(
        summary=summarize(analyzed),
        budget=budget,
        packages=with_allocation,
    )
