"""OpenCollective GraphQL client with exponential backoff retry logic"""

import asyncio
import re
from typing import Any, Dict, List, Optional

import httpx

from support_oss.config import settings
from support_oss.domain.exceptions import FundingPlatformError
from support_oss.domain.models import CollectiveSnapshot, TopSponsor
from support_oss.infrastructure.observability.metrics import registry_fetch_failures_counter, registry_latency_histogram

OC_SLUG_PATTERN = re.compile(r"opencollective\.com/([a-zA-Z0-9_-]+)")
TOP_SPONSORS_LIMIT = 3

COLLECTIVE_QUERY = """
query GetCollective($slug: String!) {
  collective(slug: $slug) {
    slug
    stats {
      balance { valueInCents }
      yearlyBudget { valueInCents }
      backers { all }
    }
    goals {
      amount { valueInCents }
      percentCompleted
    }
    members(role: BACKER, limit: 5, orderBy: {field: TOTAL_CONTRIBUTED, direction: DESC}) {
      nodes {
        account { name slug imageUrl(height: 64) }
        totalDonations { valueInCents }
      }
    }
  }
}
"""


def extract_oc_slug(funding_url: Optional[str]) -> Optional[str]:
    """Pull the collective slug out of an opencollective.com URL"""
    if not funding_url:
        return None
    match = OC_SLUG_PATTERN.search(funding_url)
    return match.group(1) if match else None


def slug_candidates(package_name: str) -> List[str]:
    """Slugs worth guessing when no funding URL points at a collective"""
    candidates = [package_name]
    if package_name.startswith("@") and "/" in package_name:
        unscoped = package_name.split("/", 1)[1]
        if unscoped and unscoped not in candidates:
            candidates.append(unscoped)
    return candidates


def _cents(node: Optional[Dict[str, Any]]) -> float:
    if not node:
        return 0.0
    return (node.get("valueInCents") or 0) / 100


def _top_sponsors(collective: Dict[str, Any]) -> List[TopSponsor]:
    nodes = (collective.get("members") or {}).get("nodes") or []
    sponsors = []
    for member in nodes:
        account = member.get("account")
        if not account or _cents(member.get("totalDonations")) <= 0:
            continue
        sponsors.append(
            TopSponsor(
                name=account.get("name") or account["slug"],
                image_url=account.get("imageUrl"),
                profile_url=f"https://opencollective.com/{account['slug']}",
            )
        )
    return sponsors[:TOP_SPONSORS_LIMIT]


def parse_collective(collective: Dict[str, Any]) -> CollectiveSnapshot:
    """Convert the GraphQL "collective" node into dollars; first goal only"""
    stats = collective.get("stats") or {}
    goals = collective.get("goals") or []
    goal = goals[0] if goals else None

    return CollectiveSnapshot(
        slug=collective["slug"],
        balance=_cents(stats.get("balance")),
        yearly_income=_cents(stats.get("yearlyBudget")),
        backers_count=int((stats.get("backers") or {}).get("all") or 0),
        goal_amount=_cents(goal.get("amount")) if goal else None,
        goal_progress=goal.get("percentCompleted") if goal else None,
        top_sponsors=_top_sponsors(collective),
    )


class OpenCollectiveClient:
    """Client for the OpenCollective GraphQL API"""

    def __init__(
        self,
        graphql_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.graphql_url = graphql_url or settings.opencollective_graphql_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.oc_max_retries
        self.backoff_base = settings.oc_backoff_base
        self.transport = transport

    async def get_collective(self, slug: str) -> Optional[CollectiveSnapshot]:
        """
        Fetch a collective by slug.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base, ...
        - Retries on 429, 5xx and network failures
        - Other 4xx responses are final

        Returns:
            CollectiveSnapshot, or None when no collective has this slug

        Raises:
            FundingPlatformError: When the API keeps failing after all retries
        """
        payload = {"query": COLLECTIVE_QUERY, "variables": {"slug": slug}}
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with registry_latency_histogram.labels(registry="opencollective").time():
                        response = await client.post(self.graphql_url, json=payload)
                        response.raise_for_status()
                    break

                except httpx.HTTPStatusError as e:
                    status = e.response.status_code
                    if status != 429 and status < 500:
                        registry_fetch_failures_counter.labels(registry="opencollective").inc()
                        raise FundingPlatformError(f"OpenCollective error {status} for {slug}") from e
                    error = e
                except httpx.RequestError as e:
                    error = e

                attempt += 1
                registry_fetch_failures_counter.labels(registry="opencollective").inc()
                if attempt >= self.max_retries:
                    raise FundingPlatformError(
                        f"OpenCollective unavailable after {attempt} attempts: {error}"
                    ) from error

                backoff = self.backoff_base * (2 ** (attempt - 1))
                await asyncio.sleep(backoff)

        try:
            body = response.json()
            collective = (body.get("data") or {}).get("collective")
            return parse_collective(collective) if collective else None
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise FundingPlatformError(f"Invalid collective data for {slug}: {e}") from e
