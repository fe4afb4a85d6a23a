"""Maps an installed plugin back to the GitHub repository it came from.

Installed plugins only carry their manifest, which does not name a
repository. Resolution tries, in order and stopping at the first hit:

1. the official archive mapping (trusted, not verified);
2. the repo map recorded by earlier installs and detections;
3. repository names guessed from the author's GitHub handle and the
   plugin id/name, each verified against the repository's manifest.json;
4. GitHub searches for the plugin id, verifying the first results.

Everything runs sequentially so that earlier tiers always complete before
later ones issue any request. The result is best effort: failure is a value,
not an exception.
"""

import re
from typing import Optional
import structlog

from pluginhub.core.errors import HubError, RateLimitError
from pluginhub.marketplace.index import HubIndex
from pluginhub.marketplace.metadata import (
    PackageManifest,
    Resolution,
    ResolutionFailure,
    ResolutionSource,
    ResolveResult,
)
from pluginhub.marketplace.sources.github import GithubClient

log = structlog.get_logger()

GITHUB_OWNER_PATTERN = re.compile(r"github\.com/(?:users/)?([^/?#\s]+)", re.IGNORECASE)

SEARCH_RESULTS_VERIFIED = 12

REASON_RATE_LIMITED = "GitHub API rate limit reached during repository detection."
REASON_NOT_FOUND = "No GitHub repository with matching manifest id was found."


def parse_github_owner(author_url: Optional[str]) -> Optional[str]:
    """Owner handle from a GitHub profile URL, if it is one."""
    if not author_url:
        return None
    match = GITHUB_OWNER_PATTERN.search(author_url)
    return match.group(1) if match else None


def normalize_token(value: Optional[str]) -> Optional[str]:
    """Lowercase, collapse non-alphanumeric runs to "-", trim hyphens."""
    if not value:
        return None
    token = re.sub(r"[^a-z0-9]+", "-", value.lower().strip()).strip("-")
    return token or None


def compact_token(value: Optional[str]) -> Optional[str]:
    token = normalize_token(value)
    return token.replace("-", "") if token else None


def candidate_repositories(owner: str, plugin_id: str, name: Optional[str] = None) -> list[str]:
    """Likely repository names for a plugin, most likely first.

    Args:
        owner: GitHub handle of the author
        plugin_id: Plugin id from the manifest
        name: Display name from the manifest

    Returns:
        Deduplicated owner/name candidates in priority order
    """
    id_token = normalize_token(plugin_id)
    name_token = normalize_token(name)
    compact_id = compact_token(plugin_id)
    compact_name = compact_token(name)

    patterns = [
        f"obsidian-{id_token}" if id_token else None,
        id_token,
        compact_id,
        f"obsidian-{name_token}" if name_token else None,
        name_token,
        compact_name,
        f"obsidian-plugin-{id_token}" if id_token else None,
    ]

    candidates: list[str] = []
    for repo_name in patterns:
        if not repo_name:
            continue
        candidate = f"{owner}/{repo_name}"
        if candidate not in candidates:
            candidates.append(candidate)
    return candidates


def search_queries(plugin_id: str, owner: Optional[str]) -> list[str]:
    """Fallback GitHub queries for a plugin id, most specific first."""
    queries = []
    if owner:
        queries.append(f"user:{owner} obsidian {plugin_id} in:name")
    queries.append(f"obsidian {plugin_id} in:name")
    queries.append(f'"{plugin_id}" obsidian plugin')
    return queries


class RepositoryResolver:
    """Finds the repository of an installed plugin.

    Example:
        resolver = RepositoryResolver(github, index)
        result = await resolver.resolve("quick-add", manifest, official=repo_by_id)
        if isinstance(result, Resolution):
            print(result.full_name, result.source.value)
    """

    def __init__(self, github: GithubClient, index: HubIndex):
        self.github = github
        self.index = index

    async def resolve(
        self,
        plugin_id: str,
        manifest: Optional[PackageManifest] = None,
        official: Optional[dict[str, str]] = None,
    ) -> ResolveResult:
        """Resolve a plugin id to a repository.

        Args:
            plugin_id: Installed plugin id
            manifest: Installed manifest of the plugin
            official: Official archive mapping of id to repository

        Returns:
            Resolution on success, ResolutionFailure otherwise
        """
        if official and official.get(plugin_id):
            return Resolution(official[plugin_id], ResolutionSource.OFFICIAL)

        tracked = self.index.get_repo(plugin_id)
        if tracked:
            return Resolution(tracked, ResolutionSource.TRACKED)

        owner = parse_github_owner(manifest.author_url) if manifest else None
        if owner:
            repo = await self.find_by_patterns(plugin_id, owner, manifest.name)
            if repo:
                log.info("repo_detected", plugin_id=plugin_id, repo=repo, method="pattern")
                return Resolution(repo, ResolutionSource.DETECTED)

        return await self.find_by_search(plugin_id, owner)

    async def find_by_patterns(
        self, plugin_id: str, owner: str, name: Optional[str] = None
    ) -> Optional[str]:
        """First guessed repository whose manifest declares the plugin id."""
        for candidate in candidate_repositories(owner, plugin_id, name):
            if await self.repo_matches(candidate, plugin_id):
                return candidate
        return None

    async def find_by_search(self, plugin_id: str, owner: Optional[str] = None) -> ResolveResult:
        """Search GitHub for the plugin and verify the top results."""
        queries = search_queries(plugin_id, owner)
        rate_limited = 0

        for query in queries:
            try:
                repos = await self.github.search_repositories(query, sort="updated")
            except RateLimitError:
                rate_limited += 1
                continue
            except HubError as e:
                log.warning("repo_search_failed", plugin_id=plugin_id, query=query, error=str(e))
                continue

            for repo in repos[:SEARCH_RESULTS_VERIFIED]:
                if await self.repo_matches(repo.full_name, plugin_id):
                    log.info(
                        "repo_detected",
                        plugin_id=plugin_id,
                        repo=repo.full_name,
                        method="search",
                    )
                    return Resolution(repo.full_name, ResolutionSource.DETECTED)

        if rate_limited == len(queries):
            log.warning("repo_detection_rate_limited", plugin_id=plugin_id)
            return ResolutionFailure(REASON_RATE_LIMITED, rate_limited=True)

        log.info("repo_not_found", plugin_id=plugin_id)
        return ResolutionFailure(REASON_NOT_FOUND)

    async def repo_matches(self, full_name: str, plugin_id: str) -> bool:
        """Whether a repository's manifest.json declares the given id."""
        manifest = await self.github.fetch_repo_manifest(full_name)
        return bool(manifest) and manifest.get("id") == plugin_id
