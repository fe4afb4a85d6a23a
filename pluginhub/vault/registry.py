"""Discovery of the plugins installed in the active vault."""

import json
from typing import Optional
import structlog

from pluginhub.vault.adapters import VaultAdapter

log = structlog.get_logger()


class InstalledPluginRegistry:
    """Enumerates installed plugins from ``<vault>/.obsidian/plugins/*/manifest.json``.

    Without an active vault the registry is simply empty.

    Example:
        registry = InstalledPluginRegistry(vault)
        await registry.reload()
        for plugin_id, manifest in registry.manifests().items():
            print(plugin_id, manifest.get("version"))
    """

    def __init__(self, vault: Optional[VaultAdapter]):
        self.vault = vault
        self._manifests: dict[str, dict] = {}

    async def reload(self) -> None:
        """Rescan the plugins folder."""
        self._manifests = {}
        if self.vault is None:
            return

        plugins_root = self.vault.resolve(f"{self.vault.config_dir}/plugins")
        if not plugins_root.is_dir():
            log.debug("plugins_dir_not_found", path=str(plugins_root))
            return

        for plugin_dir in sorted(p for p in plugins_root.iterdir() if p.is_dir()):
            data = await self.read_manifest(plugin_dir.name)
            if data is None:
                continue
            self._manifests[str(data.get("id") or plugin_dir.name)] = data

        log.info("installed_plugins_discovered", count=len(self._manifests))

    def manifests(self) -> dict[str, dict]:
        """Installed plugins by id, as of the last reload."""
        return dict(self._manifests)

    async def read_manifest(self, plugin_id: str) -> Optional[dict]:
        """On-disk manifest.json of a plugin.

        Returns:
            Parsed manifest, or None if it is absent or unreadable
        """
        if self.vault is None:
            return None

        path = f"{self.vault.plugin_dir(plugin_id)}/manifest.json"
        try:
            if not await self.vault.exists(path):
                return None
            data = json.loads(await self.vault.read(path))
        except (OSError, ValueError) as e:
            log.warning("plugin_manifest_unreadable", plugin_id=plugin_id, error=str(e))
            return None
        return data if isinstance(data, dict) else None
