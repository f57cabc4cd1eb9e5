"""Refresh a package's stored signals from npm, OpenCollective and GitHub"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from support_oss.domain.analysis import score_record
from support_oss.domain.exceptions import FundingPlatformError, PackageNotFoundError, RegistryAPIError
from support_oss.domain.models import CollectiveSnapshot, GitHubSponsorsSnapshot
from support_oss.infrastructure.clients.github import GitHubClient, funding_links_from_yml
from support_oss.infrastructure.clients.npm import NpmRegistryClient
from support_oss.infrastructure.clients.opencollective import (
    OpenCollectiveClient,
    extract_oc_slug,
    slug_candidates,
)
from support_oss.infrastructure.database.models import Package
from support_oss.infrastructure.database.repositories import PackageRepository, to_record
from support_oss.infrastructure.database.session import SessionLocal
from support_oss.infrastructure.observability.logging import log_enrichment

logger = logging.getLogger(__name__)


async def find_collective(
    pkg: Package,
    oc_client: OpenCollectiveClient,
) -> Optional[CollectiveSnapshot]:
    """
    Locate the package's collective.

    A slug from the funding URL is trusted exclusively; name guessing is only
    attempted when the package declares no OpenCollective link.
    """
    direct_slug = extract_oc_slug(pkg.npm_funding_url)
    if direct_slug:
        return await oc_client.get_collective(direct_slug)

    for slug in slug_candidates(pkg.name):
        collective = await oc_client.get_collective(slug)
        if collective:
            return collective
    return None


async def apply_github_funding(
    pkg: Package,
    repo: PackageRepository,
    github_client: GitHubClient,
) -> Optional[GitHubSponsorsSnapshot]:
    """
    Record FUNDING.yml links and the repository owner's Sponsors listing.

    Returns the Sponsors listing when one was found. Links already written
    stay in place if the Sponsors lookup fails afterwards.
    """
    repository = await github_client.get_repo(pkg.repository_owner, pkg.repository_name)
    if repository is None:
        return None

    funding = await github_client.get_funding_yml(repository.owner, repository.name, repository.default_branch)
    for link in funding_links_from_yml(funding or {}):
        repo.add_funding_source(pkg, link.platform, link.url)

    sponsors = await github_client.get_sponsors(repository.owner)
    if sponsors:
        repo.apply_github_sponsors(pkg, sponsors)
    return sponsors


async def enrich_package(
    name: str,
    repo: PackageRepository,
    npm_client: NpmRegistryClient,
    oc_client: OpenCollectiveClient,
    github_client: Optional[GitHubClient] = None,
) -> Package:
    """
    Fetch fresh registry and funding data for one stored package.

    Flow:
    1. Mark in_progress
    2. npm metadata + weekly downloads, maintainers linked (first is primary)
    3. OpenCollective collective, when one can be found
    4. GitHub FUNDING.yml links and Sponsors listing, for GitHub repositories
    5. Cache the recomputed score, mark completed

    Raises:
        PackageNotFoundError: If the package is not stored locally or on npm
        RegistryAPIError: If npm is unavailable (package marked failed)
    """
    pkg = repo.get_by_name(name)
    if pkg is None:
        raise PackageNotFoundError(f"Package not tracked: {name}")

    repo.mark_enrichment_status(pkg, "in_progress")

    try:
        metadata = await npm_client.get_package(name)
        downloads = await npm_client.get_weekly_downloads(name)
    except (PackageNotFoundError, RegistryAPIError):
        repo.mark_enrichment_status(pkg, "failed")
        log_enrichment(name, "failed", source="npm")
        raise

    repo.apply_npm_metadata(pkg, metadata, downloads)
    repo.link_maintainers(pkg, metadata.maintainers)

    try:
        collective = await find_collective(pkg, oc_client)
    except FundingPlatformError as e:
        # npm data is kept even without funding stats
        logger.warning(f"OpenCollective lookup failed for {name}: {e}")
        collective = None

    if collective:
        repo.apply_collective(pkg, collective)

    sponsors = None
    if github_client and pkg.repository_owner and pkg.repository_name:
        try:
            sponsors = await apply_github_funding(pkg, repo, github_client)
        except (RegistryAPIError, FundingPlatformError) as e:
            logger.warning(f"GitHub lookup failed for {name}: {e}")

    repo.save_score(pkg, score_record(to_record(pkg)))
    repo.mark_enrichment_status(pkg, "completed")
    log_enrichment(
        name,
        "completed",
        has_collective=collective is not None,
        has_github_sponsors=bool(sponsors and sponsors.has_sponsors_listing),
    )
    return pkg


async def run_enrichment(name: str, session_factory: Callable[[], Session] = SessionLocal) -> None:
    """Background-task entry point with its own session: enrich and commit, rolling back on failure"""
    db = session_factory()
    repo = PackageRepository(db)
    try:
        await enrich_package(name, repo, NpmRegistryClient(), OpenCollectiveClient(), GitHubClient())
        db.commit()
    except (PackageNotFoundError, RegistryAPIError) as e:
        # Persist the failed status
        db.commit()
        logger.warning(f"Enrichment of {name} failed: {e}")
    except Exception:
        db.rollback()
        logger.exception(f"Unexpected error enriching {name}")
        raise
    finally:
        db.close()
