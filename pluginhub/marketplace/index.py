"""Local marketplace index.

Remembers which repository each installed plugin came from (the repo map)
and the user's plugin sets, so resolution does not have to be repeated.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import json
import structlog

from pluginhub.marketplace.metadata import PluginSet

log = structlog.get_logger()


class HubIndex:
    """Manages the persistent repo map and plugin sets.

    The index is stored as a JSON file (by default ~/.pluginhub/index.json).
    Every mutation is written to disk immediately, so an interrupted batch
    loses nothing that was already recorded.

    Example:
        index = HubIndex(Path("~/.pluginhub/index.json").expanduser())

        index.set_repo("quick-add", "chhoumann/quickadd")
        index.get_repo("quick-add")

        position = index.create_set("Writing")
        index.add_to_set(position, "chhoumann/quickadd")
    """

    def __init__(self, index_file: Optional[Path] = None):
        """Initialize the index.

        Args:
            index_file: JSON file to use. Defaults to ~/.pluginhub/index.json
        """
        self.index_file = index_file or (Path.home() / ".pluginhub" / "index.json")
        self._repo_map: dict[str, str] = {}
        self._sets: list[PluginSet] = []
        self._loaded = False

    def load(self) -> None:
        """Load the index from disk."""
        self._repo_map = {}
        self._sets = []
        self._loaded = True

        if not self.index_file.exists():
            return

        try:
            with open(self.index_file, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            log.error("hub_index_load_failed", path=str(self.index_file), error=str(e))
            return

        for plugin_id, full_name in (data.get("repo_map") or {}).items():
            if isinstance(full_name, str) and full_name:
                self._repo_map[plugin_id] = full_name

        for set_data in data.get("plugin_sets") or []:
            try:
                self._sets.append(PluginSet.from_dict(set_data))
            except (AttributeError, TypeError) as e:
                log.warning("plugin_set_invalid", error=str(e))

        log.debug(
            "hub_index_loaded",
            mappings=len(self._repo_map),
            sets=len(self._sets),
        )

    def save(self) -> None:
        """Save the index to disk."""
        self.index_file.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": 1,
            "updated_at": datetime.now().isoformat(),
            "repo_map": dict(sorted(self._repo_map.items())),
            "plugin_sets": [s.to_dict() for s in self._sets],
        }

        try:
            with open(self.index_file, "w") as f:
                json.dump(data, f, indent=2)
            log.debug("hub_index_saved", mappings=len(self._repo_map), sets=len(self._sets))
        except OSError as e:
            log.error("hub_index_save_failed", path=str(self.index_file), error=str(e))
            raise

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    # Repo map

    def get_repo(self, plugin_id: str) -> Optional[str]:
        """Repository recorded for a plugin id, if any."""
        self._ensure_loaded()
        return self._repo_map.get(plugin_id)

    def set_repo(self, plugin_id: str, full_name: str) -> bool:
        """Record the repository of a plugin.

        Args:
            plugin_id: Installed plugin id
            full_name: owner/name of its repository

        Returns:
            True if the mapping changed (and was saved)
        """
        self._ensure_loaded()
        if not plugin_id or self._repo_map.get(plugin_id) == full_name:
            return False

        self._repo_map[plugin_id] = full_name
        self.save()
        log.info("repo_mapping_recorded", plugin_id=plugin_id, repo=full_name)
        return True

    def repo_map(self) -> dict[str, str]:
        """Copy of the whole repo map."""
        self._ensure_loaded()
        return dict(self._repo_map)

    # Plugin sets

    def list_sets(self) -> list[PluginSet]:
        self._ensure_loaded()
        return list(self._sets)

    def get_set(self, position: int) -> PluginSet:
        """Plugin set at a position.

        Raises:
            IndexError: If there is no set at that position
        """
        self._ensure_loaded()
        if position < 0 or position >= len(self._sets):
            raise IndexError(f"No plugin set at position {position}")
        return self._sets[position]

    def create_set(self, name: str = "New Set") -> int:
        """Create an empty plugin set.

        Returns:
            Position of the new set
        """
        self._ensure_loaded()
        self._sets.append(PluginSet(name=name))
        self.save()
        log.info("plugin_set_created", name=name)
        return len(self._sets) - 1

    def rename_set(self, position: int, name: str) -> None:
        plugin_set = self.get_set(position)
        plugin_set.name = name
        self.save()

    def delete_set(self, position: int) -> PluginSet:
        plugin_set = self.get_set(position)
        del self._sets[position]
        self.save()
        log.info("plugin_set_deleted", name=plugin_set.name)
        return plugin_set

    def add_to_set(self, position: int, full_name: str) -> bool:
        """Add a repository to a set.

        Returns:
            False if it was already in the set
        """
        plugin_set = self.get_set(position)
        if not plugin_set.add(full_name):
            return False
        self.save()
        log.info("plugin_set_member_added", name=plugin_set.name, repo=full_name)
        return True

    def remove_from_set(self, position: int, full_name: str) -> bool:
        plugin_set = self.get_set(position)
        if not plugin_set.remove(full_name):
            return False
        self.save()
        return True
