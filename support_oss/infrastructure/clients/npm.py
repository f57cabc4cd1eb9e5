"""npm registry HTTP client for package metadata and download counts"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from support_oss.config import settings
from support_oss.domain.exceptions import PackageNotFoundError, RegistryAPIError
from support_oss.domain.models import NpmPackageMetadata
from support_oss.infrastructure.observability.metrics import registry_fetch_failures_counter, registry_latency_histogram

GITHUB_REPO_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)")


def parse_repository_url(repository: Any) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Normalize a package.json "repository" field into (url, owner, name).

    Owner and name are only extracted for GitHub URLs.

    Example:
        "git+https://github.com/expressjs/express.git"
        -> ("https://github.com/expressjs/express", "expressjs", "express")
    """
    if isinstance(repository, dict):
        raw_url = repository.get("url")
    else:
        raw_url = repository
    if not raw_url or not isinstance(raw_url, str):
        return None, None, None

    url = re.sub(r"^git\+", "", raw_url)
    url = re.sub(r"^git://", "https://", url)
    url = re.sub(r"\.git$", "", url)
    url = re.sub(r"^ssh://git@github\.com", "https://github.com", url)
    url = re.sub(r"^git@github\.com:", "https://github.com/", url)

    match = GITHUB_REPO_PATTERN.search(url)
    if match:
        return url, match.group(1), match.group(2)
    return url, None, None


def parse_funding_url(funding: Any) -> Optional[str]:
    """package.json "funding" may be a string, an object or a list of either"""
    if not funding:
        return None
    if isinstance(funding, str):
        return funding
    if isinstance(funding, list):
        return parse_funding_url(funding[0]) if funding else None
    if isinstance(funding, dict):
        return funding.get("url")
    return None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_maintainers(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [m["name"] for m in raw if isinstance(m, dict) and m.get("name")]


class NpmRegistryClient:
    """Client for the public npm registry and downloads API"""

    def __init__(
        self,
        registry_base: str | None = None,
        downloads_api: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.registry_base = registry_base or settings.npm_registry_base
        self.downloads_api = downloads_api or settings.npm_downloads_api
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def get_package(self, name: str) -> NpmPackageMetadata:
        """
        Fetch registry metadata for a package.

        Raises:
            PackageNotFoundError: If the registry has no such package
            RegistryAPIError: On timeout, HTTP errors, or invalid response
        """
        async with self._client() as client:
            try:
                with registry_latency_histogram.labels(registry="npm").time():
                    response = await client.get(f"{self.registry_base}/{quote(name, safe='@')}")
                if response.status_code == 404:
                    raise PackageNotFoundError(f"Package not found on npm: {name}")
                response.raise_for_status()
                data: Dict[str, Any] = response.json()

                latest = (data.get("dist-tags") or {}).get("latest")
                published = (data.get("time") or {}).get(latest) if latest else None
                repo_url, repo_owner, repo_name = parse_repository_url(data.get("repository"))

                return NpmPackageMetadata(
                    name=data.get("name", name),
                    latest_version=latest,
                    last_publish=_parse_timestamp(published),
                    maintainers=_parse_maintainers(data.get("maintainers")),
                    repository_url=repo_url,
                    repository_owner=repo_owner,
                    repository_name=repo_name,
                    funding_url=parse_funding_url(data.get("funding")),
                )

            except httpx.TimeoutException as e:
                registry_fetch_failures_counter.labels(registry="npm").inc()
                raise RegistryAPIError(f"npm registry timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                registry_fetch_failures_counter.labels(registry="npm").inc()
                raise RegistryAPIError(f"npm registry error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                registry_fetch_failures_counter.labels(registry="npm").inc()
                raise RegistryAPIError(f"npm registry unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                registry_fetch_failures_counter.labels(registry="npm").inc()
                raise RegistryAPIError(f"Invalid package data from npm: {e}") from e

    async def get_weekly_downloads(self, name: str) -> Optional[int]:
        """Last-week download count, or None when npm has no figure"""
        async with self._client() as client:
            try:
                response = await client.get(f"{self.downloads_api}/{quote(name, safe='@')}")
            except httpx.RequestError as e:
                registry_fetch_failures_counter.labels(registry="npm").inc()
                raise RegistryAPIError(f"npm downloads API unreachable: {e}") from e

            if response.status_code != 200:
                return None
            try:
                downloads = response.json().get("downloads")
            except ValueError as e:
                raise RegistryAPIError(f"Invalid downloads data from npm: {e}") from e
            return int(downloads) if downloads is not None else None
