"""Search over the Obsidian forum's Share & Showcase category."""

from urllib.parse import quote
import structlog

from pluginhub.core.errors import MalformedResponseError, UpstreamError
from pluginhub.http_client import HttpClient
from pluginhub.marketplace.metadata import ForumTopic
from pluginhub.marketplace.query import NormalizedQuery
from pluginhub.marketplace.sources.base import PluginSource

log = structlog.get_logger()


class ForumSource(PluginSource):
    """Searches the forum and drops theme and snippet topics.

    The search endpoint returns both topics and individual posts; posts are
    folded into their topic and duplicates are removed by topic id, keeping
    the first occurrence. Themes and CSS snippets are filtered client-side
    because excluding them in the query also hides legitimate plugins.
    """

    name = "forum"

    def __init__(self, http: HttpClient, base_url: str = "https://forum.obsidian.md"):
        self.http = http
        self.base_url = base_url.rstrip("/")

    async def _search(self, query: NormalizedQuery) -> list[ForumTopic]:
        url = f"{self.base_url}/search.json?q={quote(query.forum_query(), safe='')}"
        response = await self.http.fetch(url)
        if not response.ok:
            raise UpstreamError(
                f"Forum search failed, status {response.status}",
                status=response.status,
                url=url,
            )

        data = response.json()
        if not isinstance(data, dict):
            raise MalformedResponseError("Forum search returned an unexpected payload")

        topics = unique_topics(data.get("topics") or [], data.get("posts") or [])
        kept = [t for t in topics if not is_theme_or_snippet(t, query)]
        log.debug(
            "forum_search",
            query=query.raw,
            results=len(kept),
            filtered=len(topics) - len(kept),
        )
        return kept


def unique_topics(topics: list[dict], posts: list[dict]) -> list[ForumTopic]:
    """Merge topic and post hits into topics, deduplicated by id."""
    items = [
        {
            "id": t.get("id"),
            "title": t.get("title") or "",
            "slug": t.get("slug") or "",
            "posts_count": t.get("posts_count") or 0,
            "like_count": t.get("like_count") or 0,
            "views": t.get("views") or 0,
            "tags": t.get("tags") or [],
        }
        for t in topics
    ]
    # Posts carry no tags; the title heuristic still applies to them
    items += [
        {
            "id": p.get("topic_id"),
            "title": p.get("topic_title") or "",
            "slug": p.get("topic_slug") or "",
            "like_count": p.get("like_count") or 0,
        }
        for p in posts
    ]

    seen: set[int] = set()
    unique = []
    for item in items:
        if item["id"] is None or item["id"] in seen:
            continue
        seen.add(item["id"])
        tags = [tag if isinstance(tag, str) else tag.get("name", "") for tag in item.get("tags", [])]
        unique.append(
            ForumTopic(
                id=item["id"],
                title=item["title"],
                slug=item["slug"],
                posts_count=item.get("posts_count", 0),
                like_count=item.get("like_count", 0),
                views=item.get("views", 0),
                tags=tags,
            )
        )
    return unique


def is_theme_or_snippet(topic: ForumTopic, query: NormalizedQuery) -> bool:
    """Whether a topic is about a theme or CSS snippet the user did not ask for."""
    if query.mentions("theme") or query.mentions("css") or query.mentions("snippet"):
        return False

    if "theme" in topic.tags or "css" in topic.tags:
        return True

    title = topic.title.lower()
    is_theme = "theme" in title and "plugin" not in title
    is_snippet = "snippet" in title
    return is_theme or is_snippet
