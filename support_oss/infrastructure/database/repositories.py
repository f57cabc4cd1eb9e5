"""Data access layer for packages and their maintainers"""

from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session, selectinload
from support_oss.infrastructure.database.models import FundingSource, Maintainer, Package, PackageMaintainer
from support_oss.domain.models import (
    Category,
    CollectiveSnapshot,
    FundingLink,
    GitHubSponsorsSnapshot,
    MaintainerRef,
    NpmPackageMetadata,
    PackageFunding,
    PackageRecord,
    ScoringResult,
)
from support_oss.utils.date_utils import utc_now


def to_record(pkg: Package) -> PackageRecord:
    """Detach an ORM row into the domain's PackageRecord"""
    primary = next((link.maintainer for link in pkg.maintainers if link.is_primary), None)
    return PackageRecord(
        name=pkg.name,
        weekly_downloads=pkg.weekly_downloads,
        dependent_count=pkg.dependent_count,
        corporate_backing=pkg.corporate_backing,
        ai_disruption_flag=pkg.ai_disruption_flag,
        maintainer_status=Category(pkg.maintainer_status) if pkg.maintainer_status else None,
        maintainer_count=len(pkg.maintainers),
        last_publish=pkg.last_publish,
        latest_version=pkg.latest_version,
        funding=PackageFunding(
            oc_slug=pkg.oc_slug,
            oc_balance=pkg.oc_balance,
            oc_yearly_income=pkg.oc_yearly_income,
            oc_backers_count=pkg.oc_backers_count,
            oc_goal_amount=pkg.oc_goal_amount,
            oc_goal_progress=pkg.oc_goal_progress,
            oc_top_sponsors=pkg.oc_top_sponsors,
            gh_has_sponsors_listing=pkg.gh_has_sponsors_listing,
            gh_sponsors_count=pkg.gh_sponsors_count,
            gh_top_sponsors=pkg.gh_top_sponsors,
            repository_owner=pkg.repository_owner,
        ),
        funding_sources=[
            FundingLink(platform=source.platform, url=source.url, verified=source.verified)
            for source in pkg.funding_sources
        ],
        primary_maintainer=(
            MaintainerRef(name=primary.name, github_username=primary.github_username) if primary else None
        ),
    )


class PackageRepository:
    """Repository for packages"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Package).options(
            selectinload(Package.maintainers).selectinload(PackageMaintainer.maintainer),
            selectinload(Package.funding_sources),
        )

    def get_by_name(self, name: str) -> Optional[Package]:
        """Fetch a package with maintainers and funding sources"""
        return self._query().filter(Package.name == name).first()

    def get_by_names(self, names: Iterable[str]) -> List[Package]:
        names = list(names)
        if not names:
            return []
        return self._query().filter(Package.name.in_(names)).all()

    def get_records(self, names: Iterable[str]) -> Dict[str, PackageRecord]:
        """Stored packages keyed by name; unknown names are simply absent"""
        return {pkg.name: to_record(pkg) for pkg in self.get_by_names(names)}

    def save_score(self, pkg: Package, result: ScoringResult) -> None:
        """Cache the latest computed score on the row"""
        pkg.sustainability_score = result.score
        pkg.category = result.category.value

    def mark_enrichment_status(self, pkg: Package, status: str) -> None:
        pkg.enrichment_status = status
        if status == "completed":
            pkg.last_enriched_at = utc_now()
        self.db.flush()

    def apply_npm_metadata(self, pkg: Package, metadata: NpmPackageMetadata, weekly_downloads: Optional[int]) -> None:
        """Copy registry metadata onto the row"""
        pkg.latest_version = metadata.latest_version
        pkg.last_publish = metadata.last_publish
        pkg.weekly_downloads = weekly_downloads
        pkg.repository_url = metadata.repository_url
        pkg.repository_owner = metadata.repository_owner
        pkg.repository_name = metadata.repository_name
        pkg.npm_funding_url = metadata.funding_url
        self.db.flush()

    def apply_collective(self, pkg: Package, collective: CollectiveSnapshot) -> None:
        """Copy OpenCollective stats onto the row and record the funding link"""
        pkg.oc_slug = collective.slug
        pkg.oc_balance = collective.balance
        pkg.oc_yearly_income = collective.yearly_income
        pkg.oc_backers_count = collective.backers_count
        pkg.oc_goal_amount = collective.goal_amount
        pkg.oc_goal_progress = collective.goal_progress
        pkg.oc_top_sponsors = [
            {"name": s.name, "imageUrl": s.image_url, "profileUrl": s.profile_url}
            for s in collective.top_sponsors
        ] or None
        self.add_funding_source(pkg, "opencollective", f"https://opencollective.com/{collective.slug}")

    def apply_github_sponsors(self, pkg: Package, sponsors: GitHubSponsorsSnapshot) -> None:
        """Copy the owner's GitHub Sponsors listing onto the row"""
        pkg.gh_has_sponsors_listing = sponsors.has_sponsors_listing
        pkg.gh_sponsors_count = sponsors.sponsor_count or None
        pkg.gh_top_sponsors = [
            {"name": s.name, "avatarUrl": s.image_url, "profileUrl": s.profile_url}
            for s in sponsors.top_sponsors
        ] or None
        self.db.flush()

    def add_funding_source(self, pkg: Package, platform: str, url: str) -> None:
        """Record a funding link once per URL"""
        if not any(source.url == url for source in pkg.funding_sources):
            pkg.funding_sources.append(FundingSource(platform=platform, url=url))
        self.db.flush()

    def get_or_create(self, name: str) -> Package:
        """Fetch a package, creating a pending row for names not seen yet"""
        pkg = self.get_by_name(name)
        if pkg is None:
            pkg = Package(name=name, ai_disruption_flag=False, enrichment_status="pending")
            self.db.add(pkg)
            self.db.flush()
        return pkg

    def set_corporate_backing(self, name: str, company: str) -> Package:
        pkg = self.get_or_create(name)
        pkg.corporate_backing = company
        self.db.flush()
        return pkg

    def flag_ai_disruption(self, name: str, note: str) -> Package:
        pkg = self.get_or_create(name)
        pkg.ai_disruption_flag = True
        pkg.ai_disruption_note = note
        self.db.flush()
        return pkg

    def link_maintainers(self, pkg: Package, npm_usernames: List[str], source: str = "npm") -> None:
        """Create maintainers as needed and link them; the first listed is primary"""
        linked = {link.maintainer_id for link in pkg.maintainers}
        for index, username in enumerate(npm_usernames):
            maintainer = self._get_or_create_maintainer(username)
            if maintainer.id in linked:
                continue
            pkg.maintainers.append(
                PackageMaintainer(maintainer=maintainer, is_primary=index == 0, source=source)
            )
            linked.add(maintainer.id)
        self.db.flush()

    def _get_or_create_maintainer(self, npm_username: str) -> Maintainer:
        existing = self.db.query(Maintainer).filter(Maintainer.npm_username == npm_username).first()
        if existing:
            return existing
        existing = self.db.get(Maintainer, npm_username.lower())
        if existing:
            return existing
        maintainer = Maintainer(id=npm_username.lower(), npm_username=npm_username, name=npm_username)
        self.db.add(maintainer)
        self.db.flush()
        return maintainer
