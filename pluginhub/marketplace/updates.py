"""Checks installed plugins against their latest GitHub releases."""

from typing import Optional
import structlog

from pluginhub.core.errors import HubError
from pluginhub.marketplace.index import HubIndex
from pluginhub.marketplace.metadata import (
    PackageManifest,
    Resolution,
    ResolutionSource,
    UpdateCandidate,
    VersionStatus,
)
from pluginhub.marketplace.resolver import RepositoryResolver
from pluginhub.marketplace.sources.archive import ArchiveSource
from pluginhub.marketplace.sources.github import GithubClient
from pluginhub.marketplace.versions import compare_versions
from pluginhub.vault.registry import InstalledPluginRegistry

log = structlog.get_logger()

NO_MANIFEST_IN_RELEASE = "No manifest.json in latest release."
RELEASE_CHECK_FAILED = "Failed to check latest release."


def sort_candidates(candidates: list[UpdateCandidate]) -> list[UpdateCandidate]:
    """Plugins needing an update first, then by plugin id."""
    return sorted(candidates, key=lambda c: (not c.needs_update, c.package_id))


def version_status(installed: str, latest: str) -> VersionStatus:
    comparison = compare_versions(installed, latest)
    if comparison < 0:
        return VersionStatus.UPDATE_AVAILABLE
    if comparison == 0:
        return VersionStatus.UP_TO_DATE
    return VersionStatus.LOCAL_NEWER


class UpdateEvaluator:
    """Builds an UpdateCandidate for every installed plugin.

    Plugins are processed one at a time. Repositories detected on the way
    are written to the repo map immediately, so the next check reports them
    as tracked. Problems with a single plugin end up in that plugin's
    candidate and never abort the batch.

    Example:
        evaluator = UpdateEvaluator(github, archive, resolver, index, registry)
        for candidate in await evaluator.check():
            if candidate.needs_update:
                print(candidate.package_id, candidate.latest_version)
    """

    def __init__(
        self,
        github: GithubClient,
        archive: ArchiveSource,
        resolver: RepositoryResolver,
        index: HubIndex,
        registry: InstalledPluginRegistry,
    ):
        self.github = github
        self.archive = archive
        self.resolver = resolver
        self.index = index
        self.registry = registry

    async def check(self) -> list[UpdateCandidate]:
        """Evaluate all installed plugins.

        Returns:
            Candidates sorted with updates first, then by plugin id
        """
        try:
            await self.registry.reload()
        except OSError as e:
            log.warning("installed_plugins_reload_failed", error=str(e))

        installed = self.registry.manifests()
        if not installed:
            return []

        official = await self._official_repo_map()

        candidates = []
        for plugin_id in installed:
            candidates.append(await self.evaluate(plugin_id, installed[plugin_id], official))

        log.info(
            "update_check_finished",
            installed=len(candidates),
            updates=sum(1 for c in candidates if c.needs_update),
        )
        return sort_candidates(candidates)

    async def _official_repo_map(self) -> dict[str, str]:
        try:
            return await self.archive.official_repo_map()
        except HubError as e:
            log.warning("official_archive_unavailable", error=str(e))
            return {}

    async def evaluate(
        self,
        plugin_id: str,
        enumerated: Optional[dict] = None,
        official: Optional[dict[str, str]] = None,
    ) -> UpdateCandidate:
        """Evaluate one installed plugin.

        Args:
            plugin_id: Installed plugin id
            enumerated: Manifest as reported by the registry
            official: Official archive mapping of id to repository
        """
        data = await self.registry.read_manifest(plugin_id) or enumerated or {}
        manifest = PackageManifest.from_dict(data, plugin_id=plugin_id)
        installed_version = str(data.get("version") or "0.0.0")

        result = await self.resolver.resolve(plugin_id, manifest, official=official)
        if not isinstance(result, Resolution):
            return UpdateCandidate(
                package_id=plugin_id,
                installed_version=installed_version,
                error=result.reason,
            )

        if result.source == ResolutionSource.DETECTED:
            try:
                self.index.set_repo(plugin_id, result.full_name)
            except OSError as e:
                log.warning(
                    "repo_map_write_failed",
                    plugin_id=plugin_id,
                    repo=result.full_name,
                    error=str(e),
                )

        try:
            latest = await self.github.latest_manifest_version(result.full_name)
        except HubError as e:
            log.warning(
                "latest_release_check_failed",
                plugin_id=plugin_id,
                repo=result.full_name,
                error=str(e),
            )
            return UpdateCandidate(
                package_id=plugin_id,
                installed_version=installed_version,
                resolved_repo=result.full_name,
                resolution_source=result.source,
                error=str(e) or RELEASE_CHECK_FAILED,
            )

        if not latest:
            return UpdateCandidate(
                package_id=plugin_id,
                installed_version=installed_version,
                resolved_repo=result.full_name,
                resolution_source=result.source,
                error=NO_MANIFEST_IN_RELEASE,
            )

        return UpdateCandidate(
            package_id=plugin_id,
            installed_version=installed_version,
            latest_version=latest,
            resolved_repo=result.full_name,
            resolution_source=result.source,
            version_status=version_status(installed_version, latest),
        )
