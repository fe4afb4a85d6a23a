"""Search over the official community plugin archive."""

import time
from typing import Optional
import structlog

from pluginhub.core.errors import MalformedResponseError, UpstreamError
from pluginhub.http_client import HttpClient
from pluginhub.marketplace.metadata import RepositoryDescriptor
from pluginhub.marketplace.query import NormalizedQuery
from pluginhub.marketplace.sources.base import PluginSource

log = structlog.get_logger()

DEFAULT_ARCHIVE_URL = (
    "https://raw.githubusercontent.com/obsidianmd/obsidian-releases/master/community-plugins.json"
)


class ArchiveSource(PluginSource):
    """Searches community-plugins.json, the list of approved plugins.

    The list is fetched once and kept for ``cache_ttl`` seconds. The archive
    carries no popularity data, so every result has a popularity score of 0.
    Fetch failures propagate to the caller.

    Example:
        archive = ArchiveSource(HttpClient())
        repos = await archive.search("calendar")
        repo_by_id = await archive.official_repo_map()
    """

    name = "archive"

    def __init__(
        self,
        http: HttpClient,
        url: str = DEFAULT_ARCHIVE_URL,
        cache_ttl: float = 300.0,
    ):
        self.http = http
        self.url = url
        self.cache_ttl = cache_ttl
        self._entries: Optional[list[dict]] = None
        self._fetched_at = 0.0

    async def entries(self, refresh: bool = False) -> list[dict]:
        """Raw archive entries, fetched or from cache.

        Raises:
            UpstreamError: If the archive answers with an error status
            MalformedResponseError: If the archive is not a JSON list
        """
        fresh = (
            self._entries is not None
            and self.cache_ttl > 0
            and time.monotonic() - self._fetched_at < self.cache_ttl
        )
        if fresh and not refresh:
            return self._entries

        response = await self.http.fetch(self.url)
        if not response.ok:
            raise UpstreamError(
                f"Community archive request failed, status {response.status}",
                status=response.status,
                url=self.url,
            )

        data = response.json()
        if not isinstance(data, list):
            raise MalformedResponseError("Community archive is not a list of plugins")

        self._entries = [e for e in data if isinstance(e, dict) and e.get("repo")]
        self._fetched_at = time.monotonic()
        log.info("archive_fetched", count=len(self._entries))
        return self._entries

    async def _search(self, query: NormalizedQuery) -> list[RepositoryDescriptor]:
        results = []
        for entry in await self.entries():
            if query.matches(
                entry.get("name", ""),
                entry.get("author", ""),
                entry.get("description", ""),
                entry.get("id", ""),
            ):
                results.append(RepositoryDescriptor.from_archive_entry(entry))

        log.debug("archive_search", query=query.raw, results=len(results))
        return results

    async def official_repo_map(self) -> dict[str, str]:
        """Map of plugin id to repository for every archived plugin."""
        return {
            entry["id"]: entry["repo"]
            for entry in await self.entries()
            if entry.get("id")
        }
