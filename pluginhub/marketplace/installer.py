"""Plugin installer for the marketplace.

Downloads the assets of a repository's latest release and writes them into
the plugin folder of every configured vault.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import structlog

from pluginhub.config import HubConfig
from pluginhub.core.errors import InstallError, MalformedResponseError, ReleaseAssetError
from pluginhub.marketplace.index import HubIndex
from pluginhub.marketplace.metadata import PackageManifest
from pluginhub.marketplace.sources.github import MANIFEST_ASSET, GithubClient, find_asset
from pluginhub.vault.adapters import DirectFilesystem, VaultAdapter
from pluginhub.vault.registry import InstalledPluginRegistry

log = structlog.get_logger()

MAIN_ASSET = "main.js"
STYLES_ASSET = "styles.css"

MISSING_ASSETS = "Plugin does not have required release assets (main.js and manifest.json)."


def is_safe_plugin_id(plugin_id: str) -> bool:
    """True if the id can be used as a single folder name below plugins/."""
    return bool(plugin_id) and not any(part in plugin_id for part in ("/", "\\", ".."))


@dataclass
class InstallTarget:
    """A vault a plugin is written to.

    Attributes:
        path: Vault root
        active: True for the active vault, written through the VaultAdapter
    """
    path: Path
    active: bool = False

    @property
    def label(self) -> str:
        return "active vault" if self.active else str(self.path)


@dataclass
class InstallResult:
    """Result of installing one repository.

    Attributes:
        full_name: Repository that was installed
        plugin_id: Id from the release manifest
        version: Version from the release manifest
        active_installed: Whether the active vault received the files
        target_count: Number of vaults written successfully
        files: File names written to each vault
        failures: (target label, error message) per failed vault
    """
    full_name: str
    plugin_id: str
    version: str = ""
    active_installed: bool = False
    target_count: int = 0
    files: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.target_count > 0


class PluginInstaller:
    """Installs plugins from GitHub releases.

    Which vaults receive a plugin depends on ``install_location``:

    - ``active``: the active vault only
    - ``selected``: the explicitly configured extra vaults
    - ``all``: the active vault, the extra vaults, and every child of the
      parent directories that looks like a vault (has a ``.obsidian`` folder)

    Example:
        installer = PluginInstaller(github, index, config, vault=vault, registry=registry)
        result = await installer.install("chhoumann/quickadd")
        print(f"Installed {result.plugin_id} to {result.target_count} vault(s)")
    """

    def __init__(
        self,
        github: GithubClient,
        index: HubIndex,
        config: HubConfig,
        vault: Optional[VaultAdapter] = None,
        filesystem: Optional[DirectFilesystem] = None,
        registry: Optional[InstalledPluginRegistry] = None,
    ):
        """Initialize the installer.

        Args:
            github: Client used for releases and downloads
            index: Index receiving the repo map entries
            config: Install location and vault paths
            vault: Adapter for the active vault, if there is one
            filesystem: Access to the other vaults
            registry: Installed-plugin registry refreshed after installs
        """
        self.github = github
        self.index = index
        self.config = config
        self.vault = vault
        self.filesystem = filesystem or DirectFilesystem()
        self.registry = registry

    def discover_targets(self) -> list[InstallTarget]:
        """Vaults to install to, active vault first, without duplicates."""
        targets: list[InstallTarget] = []
        seen: set[Path] = set()

        def add(path: Path, active: bool = False) -> None:
            key = Path(path).expanduser().resolve()
            if key in seen:
                return
            seen.add(key)
            targets.append(InstallTarget(Path(path).expanduser(), active=active))

        if self.config.install_to_active and self.vault is not None:
            add(self.vault.root, active=True)

        if self.config.use_selected_vaults:
            for path in self.config.extra_vault_paths:
                add(path)

        if self.config.use_parent_directories:
            for parent in self.config.parent_vault_directories:
                parent = Path(parent).expanduser()
                if not self.filesystem.is_dir(parent):
                    log.warning("parent_vault_directory_missing", path=str(parent))
                    continue
                for child in self.filesystem.readdir(parent):
                    if self.filesystem.is_dir(parent / child / self.config.config_dir):
                        add(parent / child)

        return targets

    async def install(self, full_name: str) -> InstallResult:
        """Install the latest release of a repository.

        Args:
            full_name: Repository as owner/name

        Returns:
            InstallResult describing where the plugin was written

        Raises:
            ReleaseAssetError: If main.js or manifest.json is missing
            InstallError: If no vault could be written
        """
        release = await self.github.latest_release(full_name)
        main_asset = find_asset(release, MAIN_ASSET)
        manifest_asset = find_asset(release, MANIFEST_ASSET)
        styles_asset = find_asset(release, STYLES_ASSET)

        if not main_asset or not manifest_asset:
            raise ReleaseAssetError(MISSING_ASSETS)

        manifest_text = await self.github.download_text(manifest_asset["browser_download_url"])
        try:
            manifest_data = json.loads(manifest_text)
        except ValueError as e:
            raise MalformedResponseError(f"Invalid manifest.json in {full_name}: {e}") from e
        if not isinstance(manifest_data, dict) or not manifest_data.get("id"):
            raise MalformedResponseError(f"manifest.json in {full_name} has no plugin id")
        if not is_safe_plugin_id(str(manifest_data["id"])):
            raise MalformedResponseError(
                f"manifest.json in {full_name} has an invalid plugin id: {manifest_data['id']!r}"
            )

        manifest = PackageManifest.from_dict(manifest_data)
        self.index.set_repo(manifest.id, full_name)

        files = {
            MAIN_ASSET: await self.github.download_text(main_asset["browser_download_url"]),
            MANIFEST_ASSET: manifest_text,
        }
        if styles_asset:
            files[STYLES_ASSET] = await self.github.download_text(
                styles_asset["browser_download_url"]
            )

        targets = self.discover_targets()
        if not targets:
            raise InstallError(
                f"No installation target configured (install_location={self.config.install_location})"
            )

        result = InstallResult(
            full_name=full_name,
            plugin_id=manifest.id,
            version=manifest.version,
            files=list(files),
        )
        for target in targets:
            try:
                await self._write_target(target, manifest.id, files)
            except (OSError, ValueError) as e:
                log.error(
                    "plugin_install_target_failed",
                    plugin_id=manifest.id,
                    target=target.label,
                    error=str(e),
                )
                result.failures.append((target.label, str(e)))
                continue
            result.target_count += 1
            if target.active:
                result.active_installed = True

        if not result.success:
            raise InstallError(
                f"Failed to install {manifest.id} to any vault: "
                + "; ".join(f"{label}: {error}" for label, error in result.failures)
            )

        if self.registry is not None:
            await self.registry.reload()

        log.info(
            "plugin_installed",
            plugin_id=manifest.id,
            repo=full_name,
            version=manifest.version,
            targets=result.target_count,
            failed=len(result.failures),
        )
        return result

    async def _write_target(self, target: InstallTarget, plugin_id: str, files: dict[str, str]) -> None:
        if target.active:
            plugin_dir = self.vault.plugin_dir(plugin_id)
            if not await self.vault.exists(plugin_dir):
                await self.vault.mkdir(plugin_dir)
            for name, data in files.items():
                await self.vault.write(f"{plugin_dir}/{name}", data)
            return

        plugin_dir = target.path / self.config.config_dir / "plugins" / plugin_id
        if not self.filesystem.exists(plugin_dir):
            self.filesystem.mkdir(plugin_dir, recursive=True)
        for name, data in files.items():
            self.filesystem.write(plugin_dir / name, data)
