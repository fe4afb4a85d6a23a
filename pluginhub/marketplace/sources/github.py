"""GitHub client: repository and user search, releases, raw manifests."""

from typing import Any, Optional
from urllib.parse import urlencode
import structlog

from pluginhub.core.errors import (
    HubError,
    MalformedResponseError,
    RateLimitError,
    UpstreamError,
)
from pluginhub.http_client import HttpClient, HttpResponse
from pluginhub.marketplace.metadata import GithubUser, RepositoryDescriptor
from pluginhub.marketplace.query import NormalizedQuery
from pluginhub.marketplace.sources.base import PluginSource

log = structlog.get_logger()

RATE_LIMIT_STATUSES = (403, 429)

MANIFEST_ASSET = "manifest.json"


class GithubClient(PluginSource):
    """Talks to the GitHub REST API and raw content host.

    A 403 or 429 from the API raises RateLimitError so callers can tell a
    rate limit apart from other failures. Nothing is retried here.

    Example:
        github = GithubClient(HttpClient(), token="ghp_...")
        repos = await github.search("kanban")
        release = await github.latest_release("mgmeyers/obsidian-kanban")
    """

    name = "github"

    def __init__(
        self,
        http: HttpClient,
        token: str = "",
        api_url: str = "https://api.github.com",
        raw_url: str = "https://raw.githubusercontent.com",
    ):
        self.http = http
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")
        self._token = ""
        self.set_token(token)

    def set_token(self, token: Optional[str]) -> None:
        """Set or clear the bearer token used for API calls."""
        self._token = (token or "").strip()

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _api_json(self, url: str) -> Any:
        response = await self.http.fetch(url, headers=self._headers())
        self._raise_for_status(response, url)
        return response.json()

    def _raise_for_status(self, response: HttpResponse, url: str) -> None:
        if response.status in RATE_LIMIT_STATUSES:
            log.warning(
                "github_rate_limited",
                url=url,
                status=response.status,
                authenticated=self.has_token,
            )
            raise RateLimitError(
                f"Request failed, status {response.status} (Rate Limit Exceeded)"
            )
        if not response.ok:
            raise UpstreamError(
                f"GitHub request failed, status {response.status}",
                status=response.status,
                url=url,
            )

    async def _search(self, query: NormalizedQuery) -> list[RepositoryDescriptor]:
        return await self.search_repositories(query.github_query(), sort=query.github_sort())

    async def search_repositories(
        self, query: str, sort: str = "stars"
    ) -> list[RepositoryDescriptor]:
        """Run a repository search with a literal GitHub query string.

        Args:
            query: GitHub search syntax, e.g. ``user:acme obsidian``
            sort: ``stars`` or ``updated``

        Raises:
            RateLimitError: On 403/429
            UpstreamError: On other error statuses
        """
        params = urlencode({"q": query, "sort": sort, "order": "desc"})
        data = await self._api_json(f"{self.api_url}/search/repositories?{params}")
        items = (data.get("items") or []) if isinstance(data, dict) else []

        repos = []
        for item in items:
            try:
                repos.append(RepositoryDescriptor.from_github_item(item))
            except (KeyError, TypeError, AttributeError) as e:
                log.debug("github_item_skipped", error=str(e))

        log.debug("github_repo_search", query=query, sort=sort, results=len(repos))
        return repos

    async def search_users(self, handle: str) -> list[GithubUser]:
        """Search GitHub accounts matching a handle (first 10)."""
        params = urlencode({"q": handle, "per_page": 10})
        data = await self._api_json(f"{self.api_url}/search/users?{params}")
        items = (data.get("items") or []) if isinstance(data, dict) else []
        return [GithubUser.from_dict(item) for item in items if item.get("login")]

    async def latest_release(self, full_name: str) -> dict:
        """The latest release of a repository as returned by the API."""
        data = await self._api_json(f"{self.api_url}/repos/{full_name}/releases/latest")
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Unexpected release payload for {full_name}")
        return data

    async def download_text(self, url: str) -> str:
        """Download a release asset or raw file as text."""
        response = await self.http.fetch(url)
        if not response.ok:
            raise UpstreamError(
                f"Download failed, status {response.status}",
                status=response.status,
                url=url,
            )
        return response.text

    async def download_json(self, url: str) -> Any:
        response = await self.http.fetch(url)
        if not response.ok:
            raise UpstreamError(
                f"Download failed, status {response.status}",
                status=response.status,
                url=url,
            )
        return response.json()

    async def latest_manifest_version(self, full_name: str) -> Optional[str]:
        """Version declared by the manifest.json of the latest release.

        Returns:
            The version, or None if the release has no manifest.json asset
        """
        release = await self.latest_release(full_name)
        asset = find_asset(release, MANIFEST_ASSET)
        if not asset or not asset.get("browser_download_url"):
            return None

        manifest = await self.download_json(asset["browser_download_url"])
        if not isinstance(manifest, dict):
            return None
        version = manifest.get("version")
        return str(version) if version else None

    async def fetch_repo_manifest(self, full_name: str) -> Optional[dict]:
        """manifest.json at the default branch of a repository.

        Returns:
            Parsed manifest, or None if it is missing or unreadable
        """
        url = f"{self.raw_url}/{full_name}/HEAD/{MANIFEST_ASSET}"
        try:
            response = await self.http.fetch(url)
            if response.status != 200:
                return None
            data = response.json()
        except HubError as e:
            log.debug("repo_manifest_unavailable", repo=full_name, error=str(e))
            return None
        return data if isinstance(data, dict) else None


def find_asset(release: dict, name: str) -> Optional[dict]:
    """Release asset with an exact file name."""
    for asset in release.get("assets") or []:
        if isinstance(asset, dict) and asset.get("name") == name:
            return asset
    return None
