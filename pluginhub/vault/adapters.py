"""Filesystem access for vaults.

``VaultAdapter`` is scoped to the active vault and takes vault-relative
paths. ``DirectFilesystem`` works on absolute paths and is used for the
extra vaults plugins are copied to.
"""

from pathlib import Path
from typing import Union
import aiofiles
import structlog

log = structlog.get_logger()

PathLike = Union[str, Path]


class VaultAdapter:
    """Async file access relative to the root of the active vault.

    Example:
        vault = VaultAdapter(Path("~/Notes").expanduser())
        plugin_dir = f"{vault.config_dir}/plugins/dataview"
        if not await vault.exists(plugin_dir):
            await vault.mkdir(plugin_dir)
        await vault.write(f"{plugin_dir}/main.js", source)
    """

    def __init__(self, root: Path, config_dir: str = ".obsidian"):
        self.root = Path(root)
        self.config_dir = config_dir

    def resolve(self, path: PathLike) -> Path:
        """Absolute path of a vault-relative path."""
        resolved = (self.root / path).resolve()
        if resolved != self.root.resolve() and self.root.resolve() not in resolved.parents:
            raise ValueError(f"Path escapes the vault: {path}")
        return resolved

    def plugin_dir(self, plugin_id: str) -> str:
        return f"{self.config_dir}/plugins/{plugin_id}"

    async def exists(self, path: PathLike) -> bool:
        return self.resolve(path).exists()

    async def mkdir(self, path: PathLike) -> None:
        self.resolve(path).mkdir(parents=True, exist_ok=True)

    async def read(self, path: PathLike) -> str:
        async with aiofiles.open(self.resolve(path), "r", encoding="utf-8") as f:
            return await f.read()

    async def write(self, path: PathLike, data: str) -> None:
        async with aiofiles.open(self.resolve(path), "w", encoding="utf-8") as f:
            await f.write(data)


class DirectFilesystem:
    """Plain filesystem access on absolute paths."""

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def is_dir(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def mkdir(self, path: PathLike, recursive: bool = True) -> None:
        Path(path).mkdir(parents=recursive, exist_ok=True)

    def readdir(self, path: PathLike) -> list[str]:
        return sorted(entry.name for entry in Path(path).iterdir())

    def write(self, path: PathLike, data: str) -> None:
        Path(path).write_text(data, encoding="utf-8")
