"""Shared test fixtures."""

import json
import pytest
import tempfile
from pathlib import Path
from typing import Optional

from pluginhub.http_client import HttpResponse

API = "https://api.github.com"
RAW = "https://raw.githubusercontent.com"


class FakeHttp:
    """In-memory stand-in for HttpClient.

    Routes map exact URLs to a response, a JSON-able payload, or an exception
    to raise. Unrouted URLs answer 404. Every call is recorded.
    """

    def __init__(self, routes: Optional[dict] = None):
        self.routes = dict(routes or {})
        self.calls: list[str] = []
        self.headers: list[dict] = []

    def add(self, url: str, payload=None, status: int = 200, text: Optional[str] = None):
        if text is None:
            text = json.dumps(payload)
        self.routes[url] = HttpResponse(status=status, text=text, url=url)

    async def fetch(self, url: str, method: str = "GET", headers: Optional[dict] = None):
        self.calls.append(url)
        self.headers.append(dict(headers or {}))
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return HttpResponse(status=404, text="Not Found", url=url)
        return route

    def calls_to(self, prefix: str) -> list[str]:
        return [c for c in self.calls if c.startswith(prefix)]


def release_payload(full_name: str, assets: list[str]) -> dict:
    """A latest-release API payload with download URLs for the given assets."""
    return {
        "tag_name": "1.0.0",
        "assets": [
            {
                "name": name,
                "browser_download_url": f"https://github.com/{full_name}/releases/download/1.0.0/{name}",
            }
            for name in assets
        ],
    }


def asset_url(full_name: str, name: str) -> str:
    return f"https://github.com/{full_name}/releases/download/1.0.0/{name}"


def add_release(http: FakeHttp, full_name: str, manifest: dict, assets=None, styles: str = None):
    """Route a complete latest release of a repository."""
    assets = list(assets or ["main.js", "manifest.json"])
    if styles is not None and "styles.css" not in assets:
        assets.append("styles.css")
    http.add(f"{API}/repos/{full_name}/releases/latest", release_payload(full_name, assets))
    if "manifest.json" in assets:
        http.add(asset_url(full_name, "manifest.json"), manifest)
    if "main.js" in assets:
        http.add(asset_url(full_name, "main.js"), text="module.exports = {};")
    if styles is not None:
        http.add(asset_url(full_name, "styles.css"), text=styles)


def write_installed_plugin(vault: Path, plugin_id: str, manifest: dict, dir_name: str = None):
    """Create <vault>/.obsidian/plugins/<dir>/manifest.json."""
    plugin_dir = vault / ".obsidian" / "plugins" / (dir_name or plugin_id)
    plugin_dir.mkdir(parents=True, exist_ok=True)
    (plugin_dir / "manifest.json").write_text(json.dumps({"id": plugin_id, **manifest}))
    return plugin_dir


@pytest.fixture
def temp_dir():
    """Temporary directory for tests."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def http():
    """Fake fetcher with no routes."""
    return FakeHttp()


@pytest.fixture
def vault_dir(temp_dir):
    """An empty active vault."""
    vault = temp_dir / "Notes"
    (vault / ".obsidian").mkdir(parents=True)
    return vault


@pytest.fixture
def index(temp_dir):
    """Hub index stored in the temp dir."""
    from pluginhub.marketplace.index import HubIndex

    return HubIndex(temp_dir / "index.json")


@pytest.fixture
def config(temp_dir, vault_dir):
    """Test configuration installing to the active vault only."""
    from pluginhub.config import HubConfig

    return HubConfig(data_dir=temp_dir / "data", vault_path=vault_dir, install_location="active")


@pytest.fixture
def github(http):
    from pluginhub.marketplace.sources.github import GithubClient

    return GithubClient(http)
