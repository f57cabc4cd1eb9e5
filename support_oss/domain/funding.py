"""Normalize OpenCollective / GitHub Sponsors data into a single funding summary"""

from typing import Any, Callable, Dict, Iterable, List, Optional

from support_oss.domain.models import FundingSummary, PackageFunding, TopSponsor
from support_oss.domain.ranges import format_amount_range, format_monthly_range

OPENCOLLECTIVE_PROFILE_URL = "https://opencollective.com/{slug}"
GITHUB_SPONSORS_PROFILE_URL = "https://github.com/sponsors/{owner}"


def _has_opencollective(pkg: PackageFunding) -> bool:
    return bool(pkg.oc_slug)


def _has_github_sponsors(pkg: PackageFunding) -> bool:
    # A listing without an owner handle cannot be linked to
    return bool(pkg.gh_has_sponsors_listing and pkg.repository_owner)


def _oc_sponsor_from_raw(raw: Dict[str, Any]) -> TopSponsor:
    return TopSponsor(
        name=raw.get("name") or "",
        image_url=raw.get("imageUrl"),
        profile_url=raw.get("profileUrl") or "",
    )


def _gh_sponsor_from_raw(raw: Dict[str, Any]) -> TopSponsor:
    # GitHub rows store "avatarUrl"; it wins over "imageUrl" when both exist
    image_url = raw.get("avatarUrl")
    if image_url is None:
        image_url = raw.get("imageUrl")
    return TopSponsor(
        name=raw.get("name") or "",
        image_url=image_url,
        profile_url=raw.get("profileUrl") or "",
    )


def _normalize_sponsors(
    raw_sponsors: Optional[Iterable[Any]],
    from_raw: Callable[[Dict[str, Any]], TopSponsor],
) -> List[TopSponsor]:
    if not isinstance(raw_sponsors, list):
        return []
    return [
        sponsor if isinstance(sponsor, TopSponsor) else from_raw(sponsor)
        for sponsor in raw_sponsors
    ]


def build_funding_summary(pkg: PackageFunding) -> Optional[FundingSummary]:
    """
    Build a display-ready funding summary for a package.

    OpenCollective is preferred whenever a collective slug is known, even if
    GitHub Sponsors data is also present. Returns None when neither platform
    can be linked. Sponsor lists are passed through in input order.
    """
    if _has_opencollective(pkg):
        return FundingSummary(
            platform="opencollective",
            profile_url=OPENCOLLECTIVE_PROFILE_URL.format(slug=pkg.oc_slug),
            balance_range=format_amount_range(pkg.oc_balance),
            monthly_income_range=format_monthly_range(pkg.oc_yearly_income),
            sponsor_count=pkg.oc_backers_count or 0,
            goal_progress=pkg.oc_goal_progress,
            top_sponsors=_normalize_sponsors(pkg.oc_top_sponsors, _oc_sponsor_from_raw),
        )

    if _has_github_sponsors(pkg):
        return FundingSummary(
            platform="github",
            profile_url=GITHUB_SPONSORS_PROFILE_URL.format(owner=pkg.repository_owner),
            balance_range=None,  # GitHub does not expose balance
            monthly_income_range=None,
            sponsor_count=pkg.gh_sponsors_count or 0,
            goal_progress=None,
            top_sponsors=_normalize_sponsors(pkg.gh_top_sponsors, _gh_sponsor_from_raw),
        )

    return None


def has_funding_data(pkg: PackageFunding) -> bool:
    """Check whether build_funding_summary would return a summary"""
    return _has_opencollective(pkg) or _has_github_sponsors(pkg)
