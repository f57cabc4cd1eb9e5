"""GitHub client for repository funding files and Sponsors listings"""

from typing import Any, Dict, List, Optional

import httpx
import yaml

from support_oss.config import settings
from support_oss.domain.exceptions import FundingPlatformError, RegistryAPIError
from support_oss.domain.models import FundingLink, GitHubRepoSnapshot, GitHubSponsorsSnapshot, TopSponsor
from support_oss.infrastructure.observability.metrics import registry_fetch_failures_counter, registry_latency_histogram

USER_AGENT = "support-oss-crawler"
TOP_SPONSORS_LIMIT = 3

# FUNDING.yml key -> (funding platform, profile URL template)
FUNDING_YML_PLATFORMS = {
    "github": ("github", "https://github.com/sponsors/{}"),
    "open_collective": ("opencollective", "https://opencollective.com/{}"),
    "ko_fi": ("kofi", "https://ko-fi.com/{}"),
    "patreon": ("patreon", "https://patreon.com/{}"),
}

_SPONSORABLE_FIELDS = """
      hasSponsorsListing
      sponsors(first: 5) {
        totalCount
        nodes {
          ... on User { login name avatarUrl(size: 64) }
          ... on Organization { login name avatarUrl(size: 64) }
        }
      }
"""

SPONSORS_QUERY = f"""
query GetSponsors($login: String!) {{
  user(login: $login) {{{_SPONSORABLE_FIELDS}  }}
  organization(login: $login) {{{_SPONSORABLE_FIELDS}  }}
}}
"""


def parse_funding_yml(content: str) -> Optional[Dict[str, Any]]:
    """Load a .github/FUNDING.yml document; None when it is not a YAML mapping"""
    try:
        funding = yaml.safe_load(content)
    except yaml.YAMLError:
        return None
    return funding if isinstance(funding, dict) else None


def _handles(value: Any) -> List[str]:
    # Keys hold a single handle or a list; template placeholders are left empty
    values = value if isinstance(value, list) else [value]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def funding_links_from_yml(funding: Dict[str, Any]) -> List[FundingLink]:
    """
    Turn FUNDING.yml entries into funding links.

    Example:
        {"github": ["sindresorhus"], "ko_fi": "sindre", "custom": "https://sindresorhus.com/donate"}
        -> github    https://github.com/sponsors/sindresorhus
           kofi      https://ko-fi.com/sindre
           custom    https://sindresorhus.com/donate

    Custom entries are kept only when they are absolute http(s) URLs.
    """
    links = []
    for key, (platform, template) in FUNDING_YML_PLATFORMS.items():
        for handle in _handles(funding.get(key)):
            links.append(FundingLink(platform=platform, url=template.format(handle)))
    for url in _handles(funding.get("custom")):
        if url.startswith("http"):
            links.append(FundingLink(platform="custom", url=url))
    return links


def parse_sponsors(login: str, entity: Dict[str, Any]) -> GitHubSponsorsSnapshot:
    """Convert a user/organization GraphQL node; sponsors without a login are skipped"""
    sponsors = entity.get("sponsors") or {}
    nodes = [node for node in sponsors.get("nodes") or [] if node and node.get("login")]
    return GitHubSponsorsSnapshot(
        login=login,
        has_sponsors_listing=bool(entity.get("hasSponsorsListing")),
        sponsor_count=int(sponsors.get("totalCount") or 0),
        top_sponsors=[
            TopSponsor(
                name=node.get("name") or node["login"],
                image_url=node.get("avatarUrl"),
                profile_url=f"https://github.com/{node['login']}",
            )
            for node in nodes[:TOP_SPONSORS_LIMIT]
        ],
    )


class GitHubClient:
    """Client for the GitHub REST and GraphQL APIs"""

    def __init__(
        self,
        api_base: str | None = None,
        graphql_url: str | None = None,
        raw_base: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_base = api_base or settings.github_api_base
        self.graphql_url = graphql_url or settings.github_graphql_url
        self.raw_base = raw_base or settings.github_raw_base
        self.token = token if token is not None else settings.github_token
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"User-Agent": USER_AGENT},
        )

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def get_repo(self, owner: str, repo: str) -> Optional[GitHubRepoSnapshot]:
        """
        Fetch repository facts.

        Returns:
            GitHubRepoSnapshot, or None when the repository does not exist

        Raises:
            RegistryAPIError: On timeout, rate limiting, HTTP errors, or invalid response
        """
        headers = {"Accept": "application/vnd.github+json", **self._auth_headers()}
        async with self._client() as client:
            try:
                with registry_latency_histogram.labels(registry="github").time():
                    response = await client.get(f"{self.api_base}/repos/{owner}/{repo}", headers=headers)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data: Dict[str, Any] = response.json()

                return GitHubRepoSnapshot(
                    owner=(data.get("owner") or {}).get("login") or owner,
                    name=data.get("name") or repo,
                    default_branch=data["default_branch"],
                )

            except httpx.TimeoutException as e:
                registry_fetch_failures_counter.labels(registry="github").inc()
                raise RegistryAPIError(f"GitHub API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                registry_fetch_failures_counter.labels(registry="github").inc()
                raise RegistryAPIError(f"GitHub API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                registry_fetch_failures_counter.labels(registry="github").inc()
                raise RegistryAPIError(f"GitHub API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                registry_fetch_failures_counter.labels(registry="github").inc()
                raise RegistryAPIError(f"Invalid repository data from GitHub: {e}") from e

    async def get_funding_yml(self, owner: str, repo: str, branch: str) -> Optional[Dict[str, Any]]:
        """Parsed .github/FUNDING.yml from the given branch, or None when absent or unreadable"""
        async with self._client() as client:
            try:
                response = await client.get(f"{self.raw_base}/{owner}/{repo}/{branch}/.github/FUNDING.yml")
            except httpx.RequestError as e:
                registry_fetch_failures_counter.labels(registry="github").inc()
                raise RegistryAPIError(f"GitHub raw content unreachable: {e}") from e

        if response.status_code != 200:
            return None
        return parse_funding_yml(response.text)

    async def get_sponsors(self, login: str) -> Optional[GitHubSponsorsSnapshot]:
        """
        Fetch the Sponsors listing of a user, falling back to an organization.

        The GraphQL API rejects anonymous calls, so without a token this
        returns None without making a request.

        Raises:
            FundingPlatformError: On network failures, HTTP errors, or invalid response
        """
        if not self.token:
            return None

        payload = {"query": SPONSORS_QUERY, "variables": {"login": login}}
        async with self._client() as client:
            try:
                with registry_latency_histogram.labels(registry="github").time():
                    response = await client.post(self.graphql_url, json=payload, headers=self._auth_headers())
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                registry_fetch_failures_counter.labels(registry="github").inc()
                raise FundingPlatformError(f"GitHub GraphQL error {e.response.status_code} for {login}") from e
            except httpx.RequestError as e:
                registry_fetch_failures_counter.labels(registry="github").inc()
                raise FundingPlatformError(f"GitHub GraphQL unreachable: {e}") from e

        try:
            data = response.json().get("data") or {}
            entity = data.get("user") or data.get("organization")
            return parse_sponsors(login, entity) if entity else None
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise FundingPlatformError(f"Invalid sponsors data for {login}: {e}") from e
