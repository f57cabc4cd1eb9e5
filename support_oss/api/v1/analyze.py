"""POST /v1/analyze - Score a dependency list and suggest a budget split"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from support_oss.api.v1.schemas import AnalysisSummarySchema, AnalyzeRequest, AnalyzeResponse, PackageResponse
from support_oss.api.dependencies import get_package_repository, get_request_id, get_scoring_weights
from support_oss.config import settings
from support_oss.domain.analysis import analyze_dependencies
from support_oss.domain.exceptions import DomainException
from support_oss.domain.models import ScoringWeights
from support_oss.infrastructure.database.repositories import PackageRepository
from support_oss.infrastructure.observability.logging import log_analysis
from support_oss.infrastructure.observability.metrics import record_analysis

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze(
    request_body: AnalyzeRequest,
    request: Request,
    repo: PackageRepository = Depends(get_package_repository),
    weights: ScoringWeights = Depends(get_scoring_weights),
):
    """
    Analyze dependencies and suggest how to split a donation budget.

    Flow:
    1. Merge dependencies and dev dependencies
    2. Load stored signals for the packages we track
    3. Score each package (neutral placeholder for unknown ones)
    4. Allocate the budget over the complete set
    5. Return packages sorted by suggested amount
    """
    start_time = time.time()
    request_id = get_request_id(request)

    requested = {**request_body.dependencies, **(request_body.dev_dependencies or {})}

    if not requested:
        raise HTTPException(status_code=400, detail="No dependencies provided")

    if len(requested) > settings.max_analyze_packages:
        raise HTTPException(
            status_code=400,
            detail=f"Too many dependencies (max {settings.max_analyze_packages})",
        )

    budget = request_body.budget or settings.default_budget

    try:
        records = repo.get_records(requested.keys())
        analysis = analyze_dependencies(requested, records, budget, weights)
    except DomainException as e:
        logging.warning(f"Analysis rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    duration_ms = (time.time() - start_time) * 1000
    record_analysis(
        [p.category for p in analysis.packages],
        [p.allocation.suggested_amount for p in analysis.packages if p.allocation],
    )
    log_analysis(request_id, analysis.summary.total, analysis.summary.found, budget, duration_ms)

    return AnalyzeResponse(
        summary=AnalysisSummarySchema(
            total=analysis.summary.total,
            found=analysis.summary.found,
            not_found=analysis.summary.not_found,
            by_category=analysis.summary.by_category,
        ),
        budget=analysis.budget,
        currency=settings.currency,
        packages=[PackageResponse.from_analyzed(p) for p in analysis.packages],
    )
