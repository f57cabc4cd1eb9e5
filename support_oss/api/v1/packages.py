"""Package lookup endpoints and on-demand enrichment"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from support_oss.api.v1.schemas import BatchRequest, BatchResponse, EnrichResponse, PackageResponse
from support_oss.api.dependencies import get_package_repository, get_scoring_weights
from support_oss.config import settings
from support_oss.domain.analysis import funding_summary_for_display, score_record
from support_oss.domain.models import ScoringWeights
from support_oss.infrastructure.database.repositories import PackageRepository, to_record
from support_oss.services.enrichment import run_enrichment

router = APIRouter()


@router.post("/packages/batch", response_model=BatchResponse)
def get_packages_batch(
    request_body: BatchRequest,
    repo: PackageRepository = Depends(get_package_repository),
    weights: ScoringWeights = Depends(get_scoring_weights),
):
    """
    Score several packages at once.

    Returns packages in request order; names beyond the batch limit are dropped
    and unknown names come back with found=false.
    """
    names = request_body.packages[: settings.max_batch_packages]
    records = repo.get_records(names)

    packages = []
    for name in names:
        record = records.get(name)
        if record is None:
            packages.append(PackageResponse.not_found(name))
            continue
        packages.append(
            PackageResponse.from_record(record, score_record(record, weights), funding_summary_for_display(record))
        )

    return BatchResponse(packages=packages)


@router.get("/packages/{name:path}", response_model=PackageResponse)
def get_package(
    name: str,
    repo: PackageRepository = Depends(get_package_repository),
    weights: ScoringWeights = Depends(get_scoring_weights),
):
    """Stored signals, sustainability score and funding summary for one package"""
    pkg = repo.get_by_name(name)
    if not pkg:
        raise HTTPException(status_code=404, detail="Package not found")

    record = to_record(pkg)
    return PackageResponse.from_record(record, score_record(record, weights), funding_summary_for_display(record))


@router.post("/packages/{name:path}/enrich", response_model=EnrichResponse, status_code=202)
def enrich_package(
    name: str,
    background_tasks: BackgroundTasks,
    repo: PackageRepository = Depends(get_package_repository),
):
    """Schedule a refresh of the package's npm and OpenCollective data"""
    if not repo.get_by_name(name):
        raise HTTPException(status_code=404, detail="Package not found")

    background_tasks.add_task(run_enrichment, name)
    return EnrichResponse(name=name, status="scheduled")
