"""Filtering and ranking of repository search results.

GitHub searches return plenty of repositories that are not plugins: people's
vaults, themes and CSS snippet collections. The classifier drops those unless
the query asks for them, re-ranks author searches, and annotates results with
the desktop-only flag from the repository manifest.
"""

from typing import Optional, Union
import structlog

from pluginhub.marketplace.metadata import RepositoryDescriptor
from pluginhub.marketplace.query import NormalizedQuery, normalize
from pluginhub.marketplace.sources.github import GithubClient

log = structlog.get_logger()

VAULT_NAME_MARKERS = ("/obsidian-vault", "-vault")
VAULT_NAME_SUFFIXES = ("/vault",)
VAULT_DESCRIPTION_MARKERS = (
    "my obsidian vault",
    "personal vault",
    "personal notes",
    "my notes",
    "sharing my vault",
)

THEME_NAME_MARKERS = ("-theme", "obsidian-theme")
THEME_NAME_SUFFIXES = ("/theme",)
THEME_DESCRIPTION_MARKERS = ("theme for obsidian", "style for obsidian")

CSS_NAME_MARKERS = ("css",)
CSS_DESCRIPTION_MARKERS = ("css snippet", "custom css", "visual style")


def _matches(name: str, description: str, markers, suffixes, description_markers) -> bool:
    return (
        any(m in name for m in markers)
        or name.endswith(tuple(suffixes))
        or any(m in description for m in description_markers)
    )


def is_vault_repo(repo: RepositoryDescriptor) -> bool:
    """Looks like somebody's personal vault rather than a plugin."""
    return _matches(
        repo.full_name.lower(),
        (repo.description or "").lower(),
        VAULT_NAME_MARKERS,
        VAULT_NAME_SUFFIXES,
        VAULT_DESCRIPTION_MARKERS,
    )


def is_theme_repo(repo: RepositoryDescriptor) -> bool:
    return _matches(
        repo.full_name.lower(),
        (repo.description or "").lower(),
        THEME_NAME_MARKERS,
        THEME_NAME_SUFFIXES,
        THEME_DESCRIPTION_MARKERS,
    )


def is_css_repo(repo: RepositoryDescriptor) -> bool:
    return _matches(
        repo.full_name.lower(),
        (repo.description or "").lower(),
        CSS_NAME_MARKERS,
        (),
        CSS_DESCRIPTION_MARKERS,
    )


class DesktopOnlyCache:
    """Memo of desktop-only flags keyed by repository full name.

    The first value stored for a key wins and is never invalidated.
    """

    def __init__(self):
        self._flags: dict[str, bool] = {}

    def get(self, full_name: str) -> Optional[bool]:
        return self._flags.get(full_name)

    def put(self, full_name: str, desktop_only: bool) -> bool:
        """Store a flag unless one is already known.

        Returns:
            The flag now stored for the key
        """
        return self._flags.setdefault(full_name, desktop_only)

    def __contains__(self, full_name: str) -> bool:
        return full_name in self._flags

    def __len__(self) -> int:
        return len(self._flags)


class ResultClassifier:
    """Filters and ranks repository-shaped results before display.

    Only GitHub results go through ``classify``; archive results are already
    curated and forum results use their own title heuristic.

    Example:
        classifier = ResultClassifier(github)
        shown = classifier.classify(repos, "dataview")
        await classifier.annotate_desktop_only(shown)
    """

    def __init__(self, github: GithubClient, cache: Optional[DesktopOnlyCache] = None):
        self.github = github
        self.cache = cache if cache is not None else DesktopOnlyCache()

    def classify(
        self,
        repos: list[RepositoryDescriptor],
        query: Union[str, NormalizedQuery],
    ) -> list[RepositoryDescriptor]:
        """Apply the exclusion rules and author ranking.

        Args:
            repos: Results in API order
            query: The query that produced them

        Returns:
            Kept results, re-ranked for author searches
        """
        if not isinstance(query, NormalizedQuery):
            query = normalize(query)

        allow_vaults = query.mentions("vault")
        allow_styles = query.is_author or query.mentions("theme") or query.mentions("css")

        kept = []
        for repo in repos:
            if not allow_vaults and is_vault_repo(repo):
                continue
            if not allow_styles and (is_theme_repo(repo) or is_css_repo(repo)):
                continue
            kept.append(repo)

        if query.is_author:
            author = query.author.lower()
            kept.sort(
                key=lambda r: (
                    not r.owner_login.lower().startswith(author),
                    -r.popularity_score,
                )
            )

        log.debug(
            "results_classified",
            query=query.raw,
            kept=len(kept),
            dropped=len(repos) - len(kept),
        )
        return kept

    async def is_desktop_only(self, full_name: str) -> bool:
        """Desktop-only flag of a repository, fetched once per name."""
        cached = self.cache.get(full_name)
        if cached is not None:
            return cached

        manifest = await self.github.fetch_repo_manifest(full_name)
        flag = bool(
            manifest
            and (manifest.get("isDesktopOnly") is True or manifest.get("desktopOnly") is True)
        )
        return self.cache.put(full_name, flag)

    async def annotate_desktop_only(
        self, repos: list[RepositoryDescriptor]
    ) -> list[RepositoryDescriptor]:
        """Fill in ``is_desktop_only`` on results where it is still unknown."""
        for repo in repos:
            if repo.is_desktop_only is None:
                repo.is_desktop_only = await self.is_desktop_only(repo.full_name)
        return repos
