"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List, Optional

from support_oss.domain.models import (
    AllocationOutput,
    AnalyzedPackage,
    Category,
    FundingSummary,
    PackageRecord,
    ScoringFactor,
    ScoringResult,
)


class AnalyzeRequest(BaseModel):
    """Request body for POST /v1/analyze"""

    dependencies: Dict[str, str] = Field(..., description="Package name -> version range")
    dev_dependencies: Optional[Dict[str, str]] = Field(None, description="Merged over dependencies")
    budget: Optional[float] = Field(None, gt=0, allow_inf_nan=False, description="Amount to split; defaults to the service budget")


class BatchRequest(BaseModel):
    """Request body for POST /v1/packages/batch"""

    packages: List[str]


class FactorSchema(BaseModel):
    name: str
    impact: float
    reason: str

    @classmethod
    def from_domain(cls, factor: ScoringFactor) -> "FactorSchema":
        return cls(name=factor.name, impact=factor.impact, reason=factor.reason)


class SponsorSchema(BaseModel):
    name: str
    image_url: Optional[str] = None
    profile_url: str


class FundingSummarySchema(BaseModel):
    platform: str
    profile_url: str
    balance_range: Optional[str] = None
    monthly_income_range: Optional[str] = None
    sponsor_count: int
    goal_progress: Optional[float] = None
    top_sponsors: List[SponsorSchema]

    @classmethod
    def from_domain(cls, summary: Optional[FundingSummary]) -> Optional["FundingSummarySchema"]:
        if summary is None:
            return None
        return cls(
            platform=summary.platform,
            profile_url=summary.profile_url,
            balance_range=summary.balance_range,
            monthly_income_range=summary.monthly_income_range,
            sponsor_count=summary.sponsor_count,
            goal_progress=summary.goal_progress,
            top_sponsors=[
                SponsorSchema(name=s.name, image_url=s.image_url, profile_url=s.profile_url)
                for s in summary.top_sponsors
            ],
        )


class FundingSourceSchema(BaseModel):
    platform: str
    url: str
    verified: bool = False


class MaintainerSchema(BaseModel):
    name: Optional[str] = None
    github_username: Optional[str] = None


class AllocationSchema(BaseModel):
    package_name: str
    percentage: float
    suggested_amount: float

    @classmethod
    def from_domain(cls, allocation: Optional[AllocationOutput]) -> Optional["AllocationSchema"]:
        if allocation is None:
            return None
        return cls(
            package_name=allocation.package_name,
            percentage=allocation.percentage,
            suggested_amount=allocation.suggested_amount,
        )


class PackageSignals(BaseModel):
    """Raw stored signals shown next to the score"""

    weekly_downloads: Optional[int] = None
    dependent_count: Optional[int] = None
    corporate_backing: Optional[str] = None
    ai_disruption_flag: Optional[bool] = None
    maintainer_count: Optional[int] = None
    last_publish: Optional[datetime] = None
    latest_version: Optional[str] = None


class PackageResponse(BaseModel):
    """Scored package, used by lookup, batch and analyze responses"""

    name: str
    found: bool
    version: Optional[str] = None
    score: Optional[int] = None
    category: Optional[Category] = None
    explanation: List[str] = []
    factors: List[FactorSchema] = []
    signals: Optional[PackageSignals] = None
    funding: Optional[FundingSummarySchema] = None
    funding_sources: List[FundingSourceSchema] = []
    primary_maintainer: Optional[MaintainerSchema] = None
    allocation: Optional[AllocationSchema] = None

    @classmethod
    def not_found(cls, name: str) -> "PackageResponse":
        return cls(name=name, found=False)

    @classmethod
    def from_record(
        cls,
        record: PackageRecord,
        result: ScoringResult,
        funding: Optional[FundingSummary],
    ) -> "PackageResponse":
        return cls(
            name=record.name,
            found=True,
            score=result.score,
            category=result.category,
            explanation=result.explanation,
            factors=[FactorSchema.from_domain(f) for f in result.factors],
            signals=PackageSignals(
                weekly_downloads=record.weekly_downloads,
                dependent_count=record.dependent_count,
                corporate_backing=record.corporate_backing,
                ai_disruption_flag=record.ai_disruption_flag,
                maintainer_count=record.maintainer_count,
                last_publish=record.last_publish,
                latest_version=record.latest_version,
            ),
            funding=FundingSummarySchema.from_domain(funding),
            funding_sources=[
                FundingSourceSchema(platform=s.platform, url=s.url, verified=s.verified)
                for s in record.funding_sources
            ],
            primary_maintainer=(
                MaintainerSchema(
                    name=record.primary_maintainer.name,
                    github_username=record.primary_maintainer.github_username,
                )
                if record.primary_maintainer
                else None
            ),
        )

    @classmethod
    def from_analyzed(cls, pkg: AnalyzedPackage) -> "PackageResponse":
        if pkg.record is None:
            # Neutral placeholder; "found" distinguishes it from a computed 50
            return cls(
                name=pkg.name,
                found=False,
                version=pkg.version,
                score=pkg.score,
                category=pkg.category,
                allocation=AllocationSchema.from_domain(pkg.allocation),
            )

        result = ScoringResult(
            score=pkg.score,
            category=pkg.category,
            explanation=pkg.explanation,
            factors=pkg.factors,
        )
        response = cls.from_record(pkg.record, result, pkg.funding)
        response.name = pkg.name
        response.version = pkg.version
        response.allocation = AllocationSchema.from_domain(pkg.allocation)
        return response


class BatchResponse(BaseModel):
    packages: List[PackageResponse]


class AnalysisSummarySchema(BaseModel):
    total: int
    found: int
    not_found: int
    by_category: Dict[str, int]


class AnalyzeResponse(BaseModel):
    """Response for POST /v1/analyze"""

    summary: AnalysisSummarySchema
    budget: float
    currency: str
    packages: List[PackageResponse]


class EnrichResponse(BaseModel):
    name: str
    status: str
