"""PluginHub: the single entry point used by the CLI.

Wires the sources, classifier, resolver, evaluator and installer together
from one HubConfig and exposes the operations a user interface needs.
"""

from dataclasses import dataclass, field
from typing import Optional, Union
import structlog

from pluginhub.config import HubConfig
from pluginhub.core.errors import HubError
from pluginhub.http_client import HttpClient
from pluginhub.marketplace.classifier import ResultClassifier
from pluginhub.marketplace.index import HubIndex
from pluginhub.marketplace.installer import PluginInstaller
from pluginhub.marketplace.metadata import (
    ForumTopic,
    GithubUser,
    PluginSet,
    RepositoryDescriptor,
    UpdateCandidate,
)
from pluginhub.marketplace.query import NormalizedQuery, normalize
from pluginhub.marketplace.resolver import RepositoryResolver
from pluginhub.marketplace.sources import ArchiveSource, ForumSource, GithubClient
from pluginhub.marketplace.updates import UpdateEvaluator
from pluginhub.vault.adapters import DirectFilesystem, VaultAdapter
from pluginhub.vault.registry import InstalledPluginRegistry

log = structlog.get_logger()


@dataclass
class BatchResult:
    """Outcome of installing several repositories.

    Attributes:
        updated: Repositories installed to at least one vault
        failed: Repositories that could not be installed
        errors: Error message per failed repository
    """
    updated: int = 0
    failed: int = 0
    errors: dict[str, str] = field(default_factory=dict)


class PluginHub:
    """Facade over the marketplace components.

    Example:
        hub = PluginHub.from_config(HubConfig.load())
        repos = await hub.search_repositories("kanban")
        await hub.annotate_desktop_only(repos)

        candidates = await hub.check_installed_updates()
        result = await hub.update_many(
            [c.resolved_repo for c in candidates if c.needs_update]
        )
    """

    def __init__(
        self,
        config: HubConfig,
        http: Optional[HttpClient] = None,
        index: Optional[HubIndex] = None,
        vault: Optional[VaultAdapter] = None,
        filesystem: Optional[DirectFilesystem] = None,
    ):
        """Initialize the hub.

        Args:
            config: Hub configuration
            http: Fetcher shared by all sources
            index: Repo map and plugin sets (from config.index_path if None)
            vault: Active vault adapter (from config.vault_path if None)
            filesystem: Access to vaults other than the active one
        """
        self.config = config
        self.http = http or HttpClient(timeout=config.http_timeout)
        self.index = index or HubIndex(config.index_path)

        if vault is None and config.vault_path is not None:
            vault = VaultAdapter(config.vault_path, config_dir=config.config_dir)
        self.vault = vault

        self.archive = ArchiveSource(
            self.http, url=config.archive_url, cache_ttl=config.archive_cache_ttl
        )
        self.github = GithubClient(
            self.http,
            token=config.github_token,
            api_url=config.github_api_url,
            raw_url=config.github_raw_url,
        )
        self.forum = ForumSource(self.http, base_url=config.forum_url)

        self.classifier = ResultClassifier(self.github)
        self.registry = InstalledPluginRegistry(self.vault)
        self.resolver = RepositoryResolver(self.github, self.index)
        self.evaluator = UpdateEvaluator(
            self.github, self.archive, self.resolver, self.index, self.registry
        )
        self.installer = PluginInstaller(
            self.github,
            self.index,
            config,
            vault=self.vault,
            filesystem=filesystem,
            registry=self.registry,
        )

    @classmethod
    def from_config(cls, config: Optional[HubConfig] = None) -> "PluginHub":
        """Build a hub from a config, loading the default one if None."""
        return cls(config or HubConfig.load())

    # Search

    async def search_archive(
        self, query: Union[str, NormalizedQuery]
    ) -> list[RepositoryDescriptor]:
        """Search the official archive. Errors propagate."""
        return await self.archive.search(query)

    async def search_repositories(
        self, query: Union[str, NormalizedQuery]
    ) -> list[RepositoryDescriptor]:
        """Search GitHub and drop vaults, themes and snippets.

        A query starting with "@" lists that user's repositories instead.
        """
        if not isinstance(query, NormalizedQuery):
            query = normalize(query)
        repos = await self.github.search(query)
        return self.classifier.classify(repos, query)

    async def search_authors(self, handle: str) -> list[GithubUser]:
        handle = handle.strip().lstrip("@")
        if not handle:
            return []
        return await self.github.search_users(handle)

    async def search_forum(self, query: Union[str, NormalizedQuery]) -> list[ForumTopic]:
        return await self.forum.search(query)

    async def annotate_desktop_only(
        self, repos: list[RepositoryDescriptor]
    ) -> list[RepositoryDescriptor]:
        return await self.classifier.annotate_desktop_only(repos)

    # Updates and installation

    async def check_installed_updates(self) -> list[UpdateCandidate]:
        return await self.evaluator.check()

    async def install_from_repository(self, full_name: str) -> int:
        """Install the latest release of a repository.

        Returns:
            Number of vaults written

        Raises:
            HubError: If the release is unusable or no vault was written
        """
        result = await self.installer.install(full_name.strip())
        return result.target_count

    async def update_many(self, full_names: list[str]) -> BatchResult:
        """Install several repositories one after another.

        Duplicates are installed once. A failure is counted and logged and
        the batch moves on.
        """
        result = BatchResult()
        seen: set[str] = set()

        for full_name in full_names:
            if not full_name or full_name in seen:
                continue
            seen.add(full_name)
            try:
                await self.install_from_repository(full_name)
            except (HubError, OSError) as e:
                log.warning("batch_install_failed", repo=full_name, error=str(e))
                result.failed += 1
                result.errors[full_name] = str(e)
                continue
            result.updated += 1

        log.info("batch_install_finished", updated=result.updated, failed=result.failed)
        return result

    # Plugin sets

    def list_sets(self) -> list[PluginSet]:
        return self.index.list_sets()

    def create_set(self, name: str = "New Set") -> int:
        return self.index.create_set(name)

    def rename_set(self, position: int, name: str) -> None:
        self.index.rename_set(position, name)

    def delete_set(self, position: int) -> PluginSet:
        return self.index.delete_set(position)

    def add_to_set(self, position: int, full_name: str) -> bool:
        return self.index.add_to_set(position, full_name.strip())

    def remove_from_set(self, position: int, full_name: str) -> bool:
        return self.index.remove_from_set(position, full_name.strip())

    async def install_set(self, position: int) -> BatchResult:
        """Install every repository of a plugin set.

        Raises:
            IndexError: If there is no set at that position
        """
        plugin_set = self.index.get_set(position)
        log.info("plugin_set_install", name=plugin_set.name, plugins=len(plugin_set.plugins))
        return await self.update_many(list(plugin_set.plugins))
