"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from support_oss.domain.exceptions import InvalidScoringInputError


class Category(str, Enum):
    """Sustainability category, ordered from most to least in need"""

    CRITICAL = "critical"
    NEEDS_SUPPORT = "needs-support"
    STABLE = "stable"
    THRIVING = "thriving"
    CORPORATE = "corporate"

    @classmethod
    def parse(cls, value: "str | Category") -> "Category":
        """Convert a stored or user-supplied string into a Category"""
        if isinstance(value, Category):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidScoringInputError(f"Unknown sustainability category: {value!r}") from None


@dataclass(frozen=True)
class ScoringWeights:
    """How far each signal can move the score. Replace the whole set to tune."""

    downloads: float = 10  # high downloads = high impact = should be funded
    dependents: float = 15  # many dependents = critical infrastructure
    oc_balance: float = 20  # has money = less urgent
    oc_income: float = 15  # regular income = sustainable
    github_sponsors: float = 5
    corporate_backing: float = 30
    maintainer_count: float = 5
    activity_penalty: float = 10
    ai_disruption: float = 15

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise InvalidScoringInputError(f"Weight {f.name} must be non-negative, got {value}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, float]) -> "ScoringWeights":
        """Build weights from a complete mapping; partial overrides are rejected"""
        names = {f.name for f in fields(cls)}
        missing = names - set(values)
        unknown = set(values) - names
        if missing or unknown:
            raise InvalidScoringInputError(
                f"Weights must name every factor exactly (missing={sorted(missing)}, unknown={sorted(unknown)})"
            )
        return cls(**{name: float(values[name]) for name in names})


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ScoringInputs:
    """Raw signals for one package. None means the signal is unavailable."""

    # Ecosystem importance
    weekly_downloads: Optional[int] = None
    dependent_count: Optional[int] = None

    # Funding health
    oc_balance: Optional[float] = None
    oc_yearly_income: Optional[float] = None
    github_sponsors_enabled: Optional[bool] = None

    # Risk factors
    corporate_backing: Optional[str] = None
    maintainer_count: Optional[int] = None
    days_since_last_publish: Optional[int] = None
    ai_disruption_flag: Optional[bool] = None

    # Maintainer self-report, overrides the algorithm when set
    maintainer_status: Optional[Category] = None

    def __post_init__(self):
        for name in (
            "weekly_downloads",
            "dependent_count",
            "oc_balance",
            "oc_yearly_income",
            "maintainer_count",
            "days_since_last_publish",
        ):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidScoringInputError(f"{name} must be non-negative, got {value}")

        if self.maintainer_status is not None:
            object.__setattr__(self, "maintainer_status", Category.parse(self.maintainer_status))


@dataclass(frozen=True)
class ScoringFactor:
    """Single signal's contribution (positive = healthier, negative = needier)"""

    name: str
    impact: float
    reason: str


@dataclass(frozen=True)
class ScoringResult:
    """Output of the score calculator"""

    score: int
    category: Category
    explanation: List[str]
    factors: List[ScoringFactor]


@dataclass(frozen=True)
class AllocationInput:
    package_name: str
    score: int
    category: Category


@dataclass(frozen=True)
class AllocationOutput:
    package_name: str
    percentage: float
    suggested_amount: float


@dataclass(frozen=True)
class TopSponsor:
    name: str
    image_url: Optional[str]
    profile_url: str


@dataclass(frozen=True)
class FundingSummary:
    """Display-ready funding data from a single platform"""

    platform: str  # "opencollective" or "github"
    profile_url: str
    balance_range: Optional[str]
    monthly_income_range: Optional[str]
    sponsor_count: int
    goal_progress: Optional[float]  # 0-100
    top_sponsors: List[TopSponsor]


@dataclass(frozen=True)
class PackageFunding:
    """Raw funding-platform columns as stored for a package"""

    # OpenCollective
    oc_slug: Optional[str] = None
    oc_balance: Optional[float] = None
    oc_yearly_income: Optional[float] = None
    oc_backers_count: Optional[int] = None
    oc_goal_amount: Optional[float] = None
    oc_goal_progress: Optional[float] = None
    oc_top_sponsors: Optional[List[Dict[str, Any]]] = None

    # GitHub Sponsors
    gh_has_sponsors_listing: Optional[bool] = None
    gh_sponsors_count: Optional[int] = None
    gh_top_sponsors: Optional[List[Dict[str, Any]]] = None

    # Needed for the GitHub Sponsors profile URL
    repository_owner: Optional[str] = None


@dataclass(frozen=True)
class FundingLink:
    platform: str
    url: str
    verified: bool = False


@dataclass(frozen=True)
class MaintainerRef:
    name: Optional[str]
    github_username: Optional[str]


@dataclass(frozen=True)
class PackageRecord:
    """Stored signals for one package, detached from the ORM"""

    name: str
    weekly_downloads: Optional[int] = None
    dependent_count: Optional[int] = None
    corporate_backing: Optional[str] = None
    ai_disruption_flag: Optional[bool] = None
    maintainer_status: Optional[Category] = None
    maintainer_count: Optional[int] = None
    last_publish: Optional[datetime] = None
    latest_version: Optional[str] = None
    funding: PackageFunding = field(default_factory=PackageFunding)
    funding_sources: List[FundingLink] = field(default_factory=list)
    primary_maintainer: Optional[MaintainerRef] = None


@dataclass(frozen=True)
class AnalyzedPackage:
    """One requested dependency after scoring and allocation"""

    name: str
    version: Optional[str]
    found: bool
    score: int
    category: Category
    explanation: List[str] = field(default_factory=list)
    factors: List[ScoringFactor] = field(default_factory=list)
    record: Optional[PackageRecord] = None
    funding: Optional[FundingSummary] = None
    allocation: Optional[AllocationOutput] = None


@dataclass(frozen=True)
class AnalysisSummary:
    total: int
    found: int
    not_found: int
    by_category: Dict[str, int]


@dataclass(frozen=True)
class DependencyAnalysis:
    """Output of a full dependency analysis"""

    summary: AnalysisSummary
    budget: float
    packages: List[AnalyzedPackage]


@dataclass(frozen=True)
class NpmPackageMetadata:
    """Package metadata from the npm registry"""

    name: str
    latest_version: Optional[str]
    last_publish: Optional[datetime]
    maintainers: List[str]
    repository_url: Optional[str]
    repository_owner: Optional[str]
    repository_name: Optional[str]
    funding_url: Optional[str]


@dataclass(frozen=True)
class CollectiveSnapshot:
    """OpenCollective collective stats, amounts in dollars"""

    slug: str
    balance: float
    yearly_income: float
    backers_count: int
    goal_amount: Optional[float]
    goal_progress: Optional[float]
    top_sponsors: List[TopSponsor]


@dataclass(frozen=True)
class GitHubRepoSnapshot:
    """Repository facts needed to locate its funding file"""

    owner: str
    name: str
    default_branch: str


@dataclass(frozen=True)
class GitHubSponsorsSnapshot:
    """GitHub Sponsors listing of a user or organization"""

    login: str
    has_sponsors_listing: bool
    sponsor_count: int
    top_sponsors: List[TopSponsor]
