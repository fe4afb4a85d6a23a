"""Tests for result classification and desktop-only annotation."""

import pytest

from conftest import RAW
from pluginhub.marketplace.classifier import (
    DesktopOnlyCache,
    ResultClassifier,
    is_css_repo,
    is_theme_repo,
    is_vault_repo,
)
from pluginhub.marketplace.metadata import RepositoryDescriptor


def repo(full_name: str, description: str = "", stars: int = 0) -> RepositoryDescriptor:
    return RepositoryDescriptor(full_name=full_name, description=description, popularity_score=stars)


# ============================================
# Heuristic Tests
# ============================================


class TestHeuristics:
    """Tests for the vault/theme/CSS detectors."""

    @pytest.mark.parametrize(
        "full_name,description",
        [
            ("owner/obsidian-vault", ""),
            ("owner/vault", ""),
            ("owner/work-vault-2024", ""),
            ("owner/notes", "My Obsidian vault, synced daily"),
            ("owner/notes", "Personal notes about everything"),
        ],
    )
    def test_vault_repos(self, full_name, description):
        assert is_vault_repo(repo(full_name, description))

    def test_plugin_is_not_vault(self):
        assert not is_vault_repo(repo("owner/obsidian-sync-plugin", "Sync tool"))
        assert not is_vault_repo(repo("owner/vaultkeeper", "Backups"))

    def test_theme_repos(self):
        assert is_theme_repo(repo("owner/things-theme"))
        assert is_theme_repo(repo("owner/theme"))
        assert is_theme_repo(repo("owner/minimal", "A clean theme for Obsidian"))
        assert not is_theme_repo(repo("owner/style-picker"))

    def test_css_repos(self):
        assert is_css_repo(repo("owner/obsidian-css-snippets"))
        assert is_css_repo(repo("owner/tweaks", "Custom CSS for callouts"))
        assert not is_css_repo(repo("owner/obsidian-git", "Backup your vault with git"))


# ============================================
# ResultClassifier.classify Tests
# ============================================


class TestClassify:
    """Tests for ResultClassifier.classify()."""

    @pytest.fixture
    def classifier(self, github):
        return ResultClassifier(github)

    def test_vault_excluded_for_unrelated_query(self, classifier):
        repos = [repo("owner/obsidian-vault"), repo("owner/sync-tool")]
        kept = classifier.classify(repos, "sync tool")
        assert [r.full_name for r in kept] == ["owner/sync-tool"]

    def test_vault_kept_when_query_mentions_vault(self, classifier):
        repos = [repo("owner/obsidian-vault"), repo("owner/sync-tool")]
        kept = classifier.classify(repos, "my vault")
        assert [r.full_name for r in kept] == ["owner/obsidian-vault", "owner/sync-tool"]

    def test_themes_and_css_excluded(self, classifier):
        repos = [repo("a/things-theme"), repo("b/css-snippets"), repo("c/kanban")]
        assert [r.full_name for r in classifier.classify(repos, "kanban")] == ["c/kanban"]

    def test_themes_kept_for_theme_query(self, classifier):
        repos = [repo("a/things-theme"), repo("c/kanban")]
        assert len(classifier.classify(repos, "dark theme")) == 2

    def test_css_kept_for_css_query(self, classifier):
        repos = [repo("b/css-snippets")]
        assert len(classifier.classify(repos, "css")) == 1

    def test_author_search_keeps_themes_and_ranks_owner_first(self, classifier):
        repos = [
            repo("other/popular", stars=500),
            repo("acme/small-theme", stars=3),
            repo("acme/big", stars=90),
            repo("other/less", stars=10),
        ]
        kept = classifier.classify(repos, "@acme")
        assert [r.full_name for r in kept] == [
            "acme/big",
            "acme/small-theme",
            "other/popular",
            "other/less",
        ]

    def test_api_order_preserved_otherwise(self, classifier):
        repos = [repo("a/low", stars=1), repo("b/high", stars=100)]
        assert [r.full_name for r in classifier.classify(repos, "x")] == ["a/low", "b/high"]


# ============================================
# Desktop-only Tests
# ============================================


class TestDesktopOnly:
    """Tests for desktop-only annotation and its cache."""

    def test_cache_is_write_once(self):
        cache = DesktopOnlyCache()
        assert cache.put("a/b", True) is True
        assert cache.put("a/b", False) is True
        assert cache.get("a/b") is True
        assert "a/b" in cache
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_reads_both_manifest_keys(self, http, github):
        http.add(f"{RAW}/a/one/HEAD/manifest.json", {"id": "one", "isDesktopOnly": True})
        http.add(f"{RAW}/a/two/HEAD/manifest.json", {"id": "two", "desktopOnly": True})
        http.add(f"{RAW}/a/three/HEAD/manifest.json", {"id": "three", "isDesktopOnly": False})
        classifier = ResultClassifier(github)

        repos = [repo("a/one"), repo("a/two"), repo("a/three"), repo("a/missing")]
        await classifier.annotate_desktop_only(repos)

        assert [r.is_desktop_only for r in repos] == [True, True, False, False]

    @pytest.mark.asyncio
    async def test_fetched_once_per_repository(self, http, github):
        http.add(f"{RAW}/a/one/HEAD/manifest.json", {"id": "one", "isDesktopOnly": True})
        classifier = ResultClassifier(github)

        await classifier.annotate_desktop_only([repo("a/one")])
        await classifier.annotate_desktop_only([repo("a/one")])

        assert len(http.calls) == 1

    @pytest.mark.asyncio
    async def test_shared_cache(self, http, github):
        cache = DesktopOnlyCache()
        cache.put("a/one", True)
        classifier = ResultClassifier(github, cache=cache)

        assert await classifier.is_desktop_only("a/one") is True
        assert http.calls == []

    @pytest.mark.asyncio
    async def test_known_flags_not_refetched(self, http, github):
        known = repo("a/one")
        known.is_desktop_only = False
        await ResultClassifier(github).annotate_desktop_only([known])
        assert http.calls == []
