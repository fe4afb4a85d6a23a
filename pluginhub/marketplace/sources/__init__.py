"""Search sources: official archive, GitHub and the forum."""

from pluginhub.marketplace.sources.base import PluginSource
from pluginhub.marketplace.sources.archive import ArchiveSource
from pluginhub.marketplace.sources.github import GithubClient
from pluginhub.marketplace.sources.forum import ForumSource

__all__ = [
    "PluginSource",
    "ArchiveSource",
    "GithubClient",
    "ForumSource",
]
