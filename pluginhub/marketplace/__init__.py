"""Plugin marketplace for pluginhub.

Discovers Obsidian community plugins across several sources, maps installed
plugins back to their repositories, and installs release assets into vaults.

Features:
- Search the official archive, GitHub and the Obsidian forum
- Filter vaults, themes and CSS snippets out of GitHub results
- Detect the repository of plugins installed by hand
- Report installed plugins with newer releases
- Install plugins into one or many vaults

CLI Commands:
    pluginhub search archive <query>    # Search the official archive
    pluginhub search github <query>     # Search GitHub repositories
    pluginhub search forum <query>      # Search forum showcase topics
    pluginhub updates [--apply]         # Check installed plugins for updates
    pluginhub install <owner/name>...   # Install from GitHub releases
"""

from pluginhub.marketplace.metadata import (
    ForumTopic,
    GithubUser,
    PackageManifest,
    PluginSet,
    RepositoryDescriptor,
    Resolution,
    ResolutionFailure,
    ResolutionSource,
    UpdateCandidate,
    VersionStatus,
)
from pluginhub.marketplace.query import NormalizedQuery, normalize
from pluginhub.marketplace.versions import compare_versions
from pluginhub.marketplace.index import HubIndex
from pluginhub.marketplace.classifier import DesktopOnlyCache, ResultClassifier
from pluginhub.marketplace.resolver import RepositoryResolver
from pluginhub.marketplace.updates import UpdateEvaluator
from pluginhub.marketplace.installer import (
    InstallResult,
    InstallTarget,
    PluginInstaller,
)

__all__ = [
    # Metadata
    "ForumTopic",
    "GithubUser",
    "PackageManifest",
    "PluginSet",
    "RepositoryDescriptor",
    "Resolution",
    "ResolutionFailure",
    "ResolutionSource",
    "UpdateCandidate",
    "VersionStatus",
    # Queries and versions
    "NormalizedQuery",
    "normalize",
    "compare_versions",
    # Index
    "HubIndex",
    # Classification and resolution
    "DesktopOnlyCache",
    "ResultClassifier",
    "RepositoryResolver",
    "UpdateEvaluator",
    # Installer
    "PluginInstaller",
    "InstallResult",
    "InstallTarget",
]
