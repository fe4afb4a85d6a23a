"""Data model for the marketplace.

Plugin manifests as shipped next to a plugin bundle, repository descriptors
produced by the search sources, plugin sets, and the update candidates
computed when checking installed plugins.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ResolutionSource(str, Enum):
    """Where an installed plugin's repository came from."""

    OFFICIAL = "official"    # Official community archive
    TRACKED = "tracked"      # Previously recorded in the repo map
    DETECTED = "detected"    # Found just now by the resolver
    UNKNOWN = "unknown"      # Could not be resolved


class VersionStatus(str, Enum):
    """Result of comparing an installed version with the latest release."""

    UPDATE_AVAILABLE = "update-available"
    UP_TO_DATE = "up-to-date"
    LOCAL_NEWER = "local-newer"
    UNKNOWN = "unknown"


def _text(value) -> Optional[str]:
    """Non-empty string values only; anything else is treated as absent."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class PackageManifest:
    """Contents of a plugin's manifest.json.

    Attributes:
        id: Plugin identifier, unique within a vault
        name: Display name
        version: Loosely structured version string
        author: Author display name
        author_url: Author homepage, often a GitHub profile
        description: Short description
        is_desktop_only: Whether the plugin refuses to run on mobile
    """

    id: str
    name: str = ""
    version: str = "0.0.0"
    author: str = ""
    author_url: Optional[str] = None
    description: str = ""
    is_desktop_only: bool = False

    @classmethod
    def from_dict(cls, data: dict, plugin_id: Optional[str] = None) -> "PackageManifest":
        """Create from a parsed manifest.json.

        Args:
            data: Parsed manifest
            plugin_id: Fallback id when the manifest does not declare one
        """
        return cls(
            id=str(data.get("id") or plugin_id or ""),
            name=str(data.get("name") or ""),
            version=str(data.get("version") or "0.0.0"),
            author=str(data.get("author") or ""),
            author_url=_text(data.get("authorUrl")),
            description=str(data.get("description") or ""),
            is_desktop_only=data.get("isDesktopOnly") is True,
        )


@dataclass
class RepositoryDescriptor:
    """A repository that (probably) contains a plugin.

    Attributes:
        full_name: owner/name on GitHub
        description: Repository or archive description
        popularity_score: Stargazer count (0 when unknown)
        owner_login: Repository owner
        html_url: Web page of the repository
        is_desktop_only: True/False once known, None until checked
    """

    full_name: str
    description: str = ""
    popularity_score: int = 0
    owner_login: str = ""
    html_url: str = ""
    is_desktop_only: Optional[bool] = None

    def __post_init__(self):
        if not self.owner_login:
            self.owner_login = self.full_name.split("/")[0]
        if not self.html_url:
            self.html_url = f"https://github.com/{self.full_name}"
        self.popularity_score = max(int(self.popularity_score or 0), 0)

    @classmethod
    def from_github_item(cls, item: dict) -> "RepositoryDescriptor":
        """Create from an item of the GitHub repository search API."""
        owner = item.get("owner") or {}
        return cls(
            full_name=item["full_name"],
            description=item.get("description") or "",
            popularity_score=item.get("stargazers_count") or 0,
            owner_login=owner.get("login") or "",
            html_url=item.get("html_url") or "",
        )

    @classmethod
    def from_archive_entry(cls, entry: dict) -> "RepositoryDescriptor":
        """Create from an entry of community-plugins.json."""
        return cls(
            full_name=entry["repo"],
            description=entry.get("description") or "",
        )


@dataclass
class GithubUser:
    """A GitHub account returned by an author search."""

    login: str
    avatar_url: str = ""
    html_url: str = ""
    type: str = "User"

    @classmethod
    def from_dict(cls, data: dict) -> "GithubUser":
        return cls(
            login=data["login"],
            avatar_url=data.get("avatar_url") or "",
            html_url=data.get("html_url") or f"https://github.com/{data['login']}",
            type=data.get("type") or "User",
        )


@dataclass
class ForumTopic:
    """A topic returned by the forum search."""

    id: int
    title: str
    slug: str
    posts_count: int = 0
    like_count: int = 0
    views: int = 0
    tags: list[str] = field(default_factory=list)

    @property
    def url(self) -> str:
        return f"https://forum.obsidian.md/t/{self.slug}/{self.id}"


@dataclass
class PluginSet:
    """A user-named group of repositories to install together.

    Attributes:
        name: Display name (not required to be unique)
        plugins: Repository full names, in insertion order
    """

    name: str
    plugins: list[str] = field(default_factory=list)

    def add(self, full_name: str) -> bool:
        """Append a repository unless already present.

        Returns:
            True if the set changed
        """
        if full_name in self.plugins:
            return False
        self.plugins.append(full_name)
        return True

    def remove(self, full_name: str) -> bool:
        """Remove a repository.

        Returns:
            True if the set changed
        """
        if full_name not in self.plugins:
            return False
        self.plugins.remove(full_name)
        return True

    def to_dict(self) -> dict:
        return {"name": self.name, "plugins": list(self.plugins)}

    @classmethod
    def from_dict(cls, data: dict) -> "PluginSet":
        plugins: list[str] = []
        for full_name in data.get("plugins", []):
            if full_name not in plugins:
                plugins.append(full_name)
        return cls(name=data.get("name", "New Set"), plugins=plugins)


@dataclass
class Resolution:
    """A repository found for an installed plugin."""

    full_name: str
    source: ResolutionSource


@dataclass
class ResolutionFailure:
    """No repository could be found for an installed plugin.

    Attributes:
        reason: Human-readable explanation
        rate_limited: True when the search was blocked by the API rate limit
    """

    reason: str
    rate_limited: bool = False


ResolveResult = Union[Resolution, ResolutionFailure]


@dataclass
class UpdateCandidate:
    """Update status of one installed plugin.

    Attributes:
        package_id: Installed plugin id
        installed_version: Version found in the vault
        latest_version: Version of the latest release, if known
        resolved_repo: Repository the plugin was mapped to, if any
        resolution_source: How the repository was found
        version_status: Outcome of the version comparison
        error: Diagnostic when the status is unknown
    """

    package_id: str
    installed_version: str
    latest_version: Optional[str] = None
    resolved_repo: Optional[str] = None
    resolution_source: ResolutionSource = ResolutionSource.UNKNOWN
    version_status: VersionStatus = VersionStatus.UNKNOWN
    error: Optional[str] = None

    def __post_init__(self):
        if self.version_status == VersionStatus.UPDATE_AVAILABLE and not self.resolved_repo:
            raise ValueError(
                f"Update candidate {self.package_id} cannot be update-available without a repository"
            )

    @property
    def needs_update(self) -> bool:
        return self.version_status == VersionStatus.UPDATE_AVAILABLE

