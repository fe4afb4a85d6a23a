"""Tests for the archive, GitHub and forum search sources."""

import pytest

from conftest import API, RAW, FakeHttp, add_release, release_payload
from pluginhub.core.errors import (
    MalformedResponseError,
    NetworkError,
    RateLimitError,
    UpstreamError,
)
from pluginhub.marketplace.query import normalize
from pluginhub.marketplace.sources import ArchiveSource, ForumSource, GithubClient, PluginSource
from pluginhub.marketplace.sources.archive import DEFAULT_ARCHIVE_URL
from pluginhub.marketplace.sources.forum import is_theme_or_snippet, unique_topics
from pluginhub.marketplace.sources.github import find_asset

ARCHIVE = [
    {
        "id": "dataview",
        "name": "Dataview",
        "author": "Michael Brenan",
        "description": "Complex data views for the data-obsessed.",
        "repo": "blacksmithgu/obsidian-dataview",
    },
    {
        "id": "calendar",
        "name": "Calendar",
        "author": "Liam Cain",
        "description": "Calendar view of your daily notes",
        "repo": "liamcain/obsidian-calendar-plugin",
    },
    {
        "id": "quickadd",
        "name": "QuickAdd",
        "author": "Christian B. B. Houmann",
        "description": "Quickly add new pages or content to your vault.",
        "repo": "chhoumann/quickadd",
    },
]


@pytest.fixture
def archive_http():
    http = FakeHttp()
    http.add(DEFAULT_ARCHIVE_URL, ARCHIVE)
    return http


# ============================================
# ArchiveSource Tests
# ============================================


class TestArchiveSource:
    """Tests for ArchiveSource."""

    def test_is_plugin_source(self, archive_http):
        assert isinstance(ArchiveSource(archive_http), PluginSource)

    @pytest.mark.asyncio
    async def test_wildcard_returns_all(self, archive_http):
        repos = await ArchiveSource(archive_http).search("plugins")
        assert [r.full_name for r in repos] == [e["repo"] for e in ARCHIVE]

    @pytest.mark.asyncio
    async def test_empty_query_returns_all(self, archive_http):
        assert len(await ArchiveSource(archive_http).search("")) == 3

    @pytest.mark.asyncio
    async def test_matches_description_with_singular(self, archive_http):
        repos = await ArchiveSource(archive_http).search("Calendars")
        assert [r.full_name for r in repos] == ["liamcain/obsidian-calendar-plugin"]

    @pytest.mark.asyncio
    async def test_matches_author(self, archive_http):
        repos = await ArchiveSource(archive_http).search("brenan")
        assert [r.full_name for r in repos] == ["blacksmithgu/obsidian-dataview"]

    @pytest.mark.asyncio
    async def test_descriptor_fields(self, archive_http):
        repo = (await ArchiveSource(archive_http).search("quickadd"))[0]
        assert repo.popularity_score == 0
        assert repo.owner_login == "chhoumann"
        assert repo.html_url == "https://github.com/chhoumann/quickadd"
        assert repo.is_desktop_only is None

    @pytest.mark.asyncio
    async def test_cached_between_searches(self, archive_http):
        archive = ArchiveSource(archive_http, cache_ttl=300)
        await archive.search("dataview")
        await archive.search("calendar")
        assert archive_http.calls == [DEFAULT_ARCHIVE_URL]

    @pytest.mark.asyncio
    async def test_cache_disabled(self, archive_http):
        archive = ArchiveSource(archive_http, cache_ttl=0)
        await archive.search("dataview")
        await archive.search("calendar")
        assert len(archive_http.calls) == 2

    @pytest.mark.asyncio
    async def test_error_status_propagates(self):
        http = FakeHttp()
        http.add(DEFAULT_ARCHIVE_URL, status=500, text="oops")
        with pytest.raises(UpstreamError) as exc:
            await ArchiveSource(http).search("dataview")
        assert exc.value.status == 500

    @pytest.mark.asyncio
    async def test_not_a_list(self):
        http = FakeHttp()
        http.add(DEFAULT_ARCHIVE_URL, {"plugins": []})
        with pytest.raises(MalformedResponseError):
            await ArchiveSource(http).search("")

    @pytest.mark.asyncio
    async def test_network_error_propagates(self):
        http = FakeHttp({DEFAULT_ARCHIVE_URL: NetworkError("offline")})
        with pytest.raises(NetworkError):
            await ArchiveSource(http).search("")

    @pytest.mark.asyncio
    async def test_official_repo_map(self, archive_http):
        mapping = await ArchiveSource(archive_http).official_repo_map()
        assert mapping["quickadd"] == "chhoumann/quickadd"
        assert len(mapping) == 3


# ============================================
# GithubClient Tests
# ============================================


def search_url(query: str, sort: str = "stars") -> str:
    from urllib.parse import urlencode

    return f"{API}/search/repositories?{urlencode({'q': query, 'sort': sort, 'order': 'desc'})}"


def github_item(full_name: str, stars: int = 0, description: str = "") -> dict:
    return {
        "full_name": full_name,
        "description": description,
        "stargazers_count": stars,
        "owner": {"login": full_name.split("/")[0]},
        "html_url": f"https://github.com/{full_name}",
    }


class TestGithubClient:
    """Tests for GithubClient."""

    @pytest.mark.asyncio
    async def test_search_builds_refined_query(self, http, github):
        query = normalize("kanban")
        http.add(search_url(query.github_query()), {"items": [github_item("mgmeyers/obsidian-kanban", 3000)]})

        repos = await github.search(query)

        assert repos[0].full_name == "mgmeyers/obsidian-kanban"
        assert repos[0].popularity_score == 3000
        assert "sort=stars" in http.calls[0]

    @pytest.mark.asyncio
    async def test_author_search_sorted_by_updated(self, http, github):
        http.add(search_url("user:acme", "updated"), {"items": [github_item("acme/one")]})
        repos = await github.search("@acme")
        assert [r.full_name for r in repos] == ["acme/one"]

    @pytest.mark.asyncio
    async def test_headers_without_token(self, http, github):
        http.add(search_url("x"), {"items": []})
        await github.search_repositories("x")
        assert http.headers[0] == {"Accept": "application/vnd.github.v3+json"}

    @pytest.mark.asyncio
    async def test_bearer_token(self, http):
        github = GithubClient(http, token="  ghp_secret ")
        http.add(search_url("x"), {"items": []})
        await github.search_repositories("x")
        assert http.headers[0]["Authorization"] == "Bearer ghp_secret"
        assert github.has_token

    @pytest.mark.parametrize("status", [403, 429])
    @pytest.mark.asyncio
    async def test_rate_limit(self, http, github, status):
        http.add(search_url("x"), {"message": "API rate limit exceeded"}, status=status)
        with pytest.raises(RateLimitError) as exc:
            await github.search_repositories("x")
        assert str(status) in str(exc.value)

    @pytest.mark.asyncio
    async def test_other_error_status(self, http, github):
        http.add(search_url("x"), {"message": "Validation Failed"}, status=422)
        with pytest.raises(UpstreamError) as exc:
            await github.search_repositories("x")
        assert not isinstance(exc.value, RateLimitError)

    @pytest.mark.asyncio
    async def test_skips_malformed_items(self, http, github):
        http.add(search_url("x"), {"items": [{"name": "no-full-name"}, github_item("a/b")]})
        repos = await github.search_repositories("x")
        assert [r.full_name for r in repos] == ["a/b"]

    @pytest.mark.asyncio
    async def test_search_users(self, http, github):
        http.add(
            f"{API}/search/users?q=chhou&per_page=10",
            {"items": [{"login": "chhoumann", "avatar_url": "https://a/1", "type": "User"}]},
        )
        users = await github.search_users("chhou")
        assert users[0].login == "chhoumann"
        assert users[0].html_url == "https://github.com/chhoumann"

    @pytest.mark.asyncio
    async def test_latest_manifest_version(self, http, github):
        add_release(http, "acme/plugin", {"id": "plugin", "version": "1.4.0"})
        assert await github.latest_manifest_version("acme/plugin") == "1.4.0"

    @pytest.mark.asyncio
    async def test_latest_manifest_version_missing_asset(self, http, github):
        http.add(f"{API}/repos/acme/plugin/releases/latest", release_payload("acme/plugin", ["main.js"]))
        assert await github.latest_manifest_version("acme/plugin") is None

    @pytest.mark.asyncio
    async def test_no_release(self, http, github):
        with pytest.raises(UpstreamError):
            await github.latest_release("acme/none")

    @pytest.mark.asyncio
    async def test_fetch_repo_manifest(self, http, github):
        http.add(f"{RAW}/acme/plugin/HEAD/manifest.json", {"id": "plugin"})
        assert await github.fetch_repo_manifest("acme/plugin") == {"id": "plugin"}

    @pytest.mark.asyncio
    async def test_fetch_repo_manifest_failures_are_none(self, http, github):
        http.add(f"{RAW}/acme/broken/HEAD/manifest.json", text="<html>")
        http.routes[f"{RAW}/acme/down/HEAD/manifest.json"] = NetworkError("offline")

        assert await github.fetch_repo_manifest("acme/missing") is None
        assert await github.fetch_repo_manifest("acme/broken") is None
        assert await github.fetch_repo_manifest("acme/down") is None

    def test_find_asset_exact_name(self):
        release = release_payload("a/b", ["main.js.map", "main.js"])
        assert find_asset(release, "main.js")["name"] == "main.js"
        assert find_asset(release, "styles.css") is None
        assert find_asset({}, "main.js") is None


# ============================================
# ForumSource Tests
# ============================================


FORUM_SEARCH = "https://forum.obsidian.md/search.json?q="


class TestForumSource:
    """Tests for ForumSource."""

    @pytest.mark.asyncio
    async def test_search_url_and_results(self):
        http = FakeHttp()
        http.add(
            f"{FORUM_SEARCH}kanban%20category%3A9",
            {
                "topics": [
                    {"id": 1, "title": "New plugin: Kanban", "slug": "kanban", "like_count": 5},
                    {"id": 2, "title": "Minimal theme", "slug": "minimal"},
                ],
                "posts": [
                    {"topic_id": 1, "topic_title": "New plugin: Kanban", "topic_slug": "kanban"},
                    {"topic_id": 3, "topic_title": "Kanban sync", "topic_slug": "kanban-sync"},
                ],
            },
        )

        topics = await ForumSource(http).search("kanban")

        assert [t.id for t in topics] == [1, 3]
        assert topics[0].like_count == 5
        assert topics[0].url == "https://forum.obsidian.md/t/kanban/1"

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        http = FakeHttp()
        http.add(f"{FORUM_SEARCH}category%3A9", status=502, text="bad gateway")
        with pytest.raises(UpstreamError):
            await ForumSource(http).search("")

    def test_unique_topics_keeps_first(self):
        topics = unique_topics(
            [{"id": 7, "title": "First", "slug": "first", "tags": [{"name": "plugin"}]}],
            [{"topic_id": 7, "topic_title": "Second", "topic_slug": "second"}],
        )
        assert len(topics) == 1
        assert topics[0].title == "First"
        assert topics[0].tags == ["plugin"]

    def test_theme_and_snippet_filter(self):
        topics = unique_topics(
            [
                {"id": 1, "title": "Things theme"},
                {"id": 2, "title": "Theme switcher plugin"},
                {"id": 3, "title": "Callout snippet"},
                {"id": 4, "title": "Anything", "tags": ["css"]},
            ],
            [],
        )
        query = normalize("things")
        assert [t.id for t in topics if not is_theme_or_snippet(t, query)] == [2]

    def test_theme_query_keeps_themes(self):
        topic = unique_topics([{"id": 1, "title": "Things theme"}], [])[0]
        assert not is_theme_or_snippet(topic, normalize("theme"))
