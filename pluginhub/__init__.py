"""pluginhub - Obsidian plugin discovery and installation.

Searches the official community archive, GitHub and the Obsidian forum for
plugins, checks installed plugins for updates, and installs releases into
one or more vaults.
"""

__version__ = "1.0.0"

from pluginhub.config import HubConfig
from pluginhub.core.hub import BatchResult, PluginHub

__all__ = [
    "__version__",
    "BatchResult",
    "HubConfig",
    "PluginHub",
]
