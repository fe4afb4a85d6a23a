"""Common interface of the plugin search sources."""

from abc import ABC, abstractmethod
from typing import Union

from pluginhub.marketplace.query import NormalizedQuery, normalize


class PluginSource(ABC):
    """A place plugins can be searched for.

    Subclasses implement ``_search`` on an already normalized query; callers
    may pass either the raw text or a NormalizedQuery.
    """

    name: str = "source"

    async def search(self, query: Union[str, NormalizedQuery]) -> list:
        """Search the source.

        Args:
            query: Raw user query or NormalizedQuery

        Returns:
            Results in the source's own order
        """
        if not isinstance(query, NormalizedQuery):
            query = normalize(query)
        return await self._search(query)

    @abstractmethod
    async def _search(self, query: NormalizedQuery) -> list:
        """Search with a normalized query."""
