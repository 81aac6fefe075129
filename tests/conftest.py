"""Pytest configuration and shared fixtures for the visibility checker tests.

Guarantees:
- No external network requests: probes go through a scripted fake client or
  a mocked Playwright request context.
- Deterministic time: tests pass an explicit ``now`` to freshness checks.
- Isolated configuration: ``mock_config`` clears the settings singleton and
  points the project root at a temporary directory.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from loguru import logger
from playwright.async_api import Error as PlaywrightError
from pytest_mock import MockerFixture

from config.settings import VisibilityConfig
from visibility.probe import ProbeOutcome

BASE_URL = "https://hivemoot.github.io/colony"
FALLBACK_BASE_URL = "https://fallback.github.io/colony"
API_URL = "https://api.test.example/repos/hivemoot/colony"

REQUIRED_TOPICS = [
    "autonomous-agents",
    "ai-governance",
    "multi-agent",
    "agent-collaboration",
    "dashboard",
    "react",
    "typescript",
    "github-pages",
    "open-source",
]


class FakeProbeClient:
    """Scripted stand-in for ProbeClient.

    ``routes`` maps a URL to ``(status, body)``; a URL that is missing, or
    mapped to None, behaves like a network failure.
    """

    def __init__(self, routes: dict[str, tuple[int, str] | None]) -> None:
        self.routes = routes
        self.calls: list[dict[str, Any]] = []

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        read_body: bool = False,
    ) -> ProbeOutcome:
        self.calls.append({"url": url, "headers": headers, "read_body": read_body})
        route = self.routes.get(url)
        if route is None:
            return ProbeOutcome(status=None, url=url)
        status, body = route
        return ProbeOutcome(status=status, url=url, body=body if read_body else None)

    @property
    def requested_urls(self) -> list[str]:
        return [call["url"] for call in self.calls]


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Drop any loguru sinks a test configured, so none outlive its captured streams."""
    yield
    logger.remove()
    logger.configure(extra={})


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> VisibilityConfig:
    """Provide an isolated VisibilityConfig with safe test defaults.

    Clears the lru_cache singleton before and after the test and removes any
    token or user-agent override inherited from the developer's shell.
    """
    from config.settings import get_config

    get_config.cache_clear()

    project_root = tmp_path / "site"
    (project_root / "public").mkdir(parents=True)

    for key in ("GH_TOKEN", "GITHUB_TOKEN", "VISIBILITY_USER_AGENT"):
        monkeypatch.delenv(key, raising=False)

    test_env = {
        "VISIBILITY_ENVIRONMENT": "test",
        "VISIBILITY_DEBUG": "false",
        "VISIBILITY_LOG_LEVEL": "DEBUG",
        "VISIBILITY_LOG_TO_FILE": "false",
        "VISIBILITY_LOG_DIR": str(tmp_path / "logs"),
        "VISIBILITY_PROJECT_ROOT": str(project_root),
        "VISIBILITY_REPOSITORY": "hivemoot/colony",
        "VISIBILITY_GITHUB_API_URL": "https://api.test.example",
        "VISIBILITY_DEFAULT_DEPLOYED_BASE_URL": FALLBACK_BASE_URL,
        "VISIBILITY_REQUEST_TIMEOUT_MS": "200",
        "VISIBILITY_FRESHNESS_MAX_AGE_HOURS": "18",
    }
    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def homepage_html_factory() -> Callable[..., str]:
    """Factory for deployed homepage markup.

    Every head tag can be overridden by keyword; pass None to omit it.

    Example:
        html = homepage_html_factory(canonical=None)  # no canonical link
    """
    defaults = {
        "canonical": f'<link rel="canonical" href="{BASE_URL}/">',
        "og_image": f'<meta property="og:image" content="{BASE_URL}/og-image.png">',
        "og_width": '<meta property="og:image:width" content="1200">',
        "og_height": '<meta property="og:image:height" content="630">',
        "twitter_image": f'<meta name="twitter:image" content="{BASE_URL}/twitter-card.png">',
        "manifest": '<link rel="manifest" href="manifest.webmanifest">',
        "favicon": '<link rel="icon" type="image/svg+xml" href="favicon.svg">',
        "apple_touch_icon": '<link rel="apple-touch-icon" href="/colony/apple-touch-icon.png">',
        "json_ld": '<script type="application/ld+json">{"@type": "WebSite"}</script>',
    }

    def _generate_html(**overrides: str | None) -> str:
        tags = {**defaults, **overrides}
        head = "\n    ".join(tag for tag in tags.values() if tag is not None)
        return f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>Colony</title>
    {head}
  </head>
  <body><div id="root"></div></body>
</html>
"""

    return _generate_html


@pytest.fixture
def manifest_payload() -> dict[str, Any]:
    return {
        "name": "Colony",
        "icons": [
            {"src": "pwa-192x192.png", "sizes": "192x192", "type": "image/png"},
            {"src": "pwa-512x512.png", "sizes": "512x512", "type": "image/png"},
        ],
    }


@pytest.fixture
def repository_payload() -> dict[str, Any]:
    return {
        "full_name": "hivemoot/colony",
        "topics": list(REQUIRED_TOPICS),
        "homepage": f"{BASE_URL}/",
        "description": "Live dashboard of autonomous agents building software together",
    }


@pytest.fixture
def site_routes(
    homepage_html_factory: Callable[..., str],
    manifest_payload: dict[str, Any],
    repository_payload: dict[str, Any],
) -> dict[str, tuple[int, str] | None]:
    """Route table for a fully healthy deployment and repository."""
    return {
        API_URL: (200, json.dumps(repository_payload)),
        f"{BASE_URL}/": (200, homepage_html_factory()),
        f"{BASE_URL}/robots.txt": (
            200,
            f"User-agent: *\nAllow: /\nSitemap: {BASE_URL}/sitemap.xml\n",
        ),
        f"{BASE_URL}/sitemap.xml": (
            200,
            f"<urlset><url><loc>{BASE_URL}/</loc><lastmod>2026-10-19</lastmod></url></urlset>",
        ),
        f"{BASE_URL}/data/activity.json": (
            200,
            json.dumps({"generatedAt": "2026-10-19T06:00:00Z"}),
        ),
        f"{BASE_URL}/og-image.png": (200, ""),
        f"{BASE_URL}/twitter-card.png": (200, ""),
        f"{BASE_URL}/manifest.webmanifest": (200, json.dumps(manifest_payload)),
        f"{BASE_URL}/pwa-192x192.png": (200, ""),
        f"{BASE_URL}/pwa-512x512.png": (200, ""),
        f"{BASE_URL}/favicon.svg": (200, ""),
        f"{BASE_URL}/apple-touch-icon.png": (200, ""),
    }


@pytest.fixture
def fake_client(site_routes: dict[str, tuple[int, str] | None]) -> FakeProbeClient:
    """Fake client over ``site_routes``; mutate the routes to inject faults."""
    return FakeProbeClient(site_routes)


@pytest.fixture
def local_site(mock_config: VisibilityConfig) -> Path:
    """Write healthy local copies of index.html, sitemap.xml and robots.txt."""
    root = mock_config.project_root
    (root / "index.html").write_text(
        '<html><head><script type="application/ld+json">{}</script></head></html>',
        encoding="utf-8",
    )
    (root / "public" / "sitemap.xml").write_text(
        "<urlset><url><lastmod>2026-10-18</lastmod></url></urlset>", encoding="utf-8"
    )
    (root / "public" / "robots.txt").write_text(
        f"Sitemap: {BASE_URL}/sitemap.xml\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def playwright_factory(mocker: MockerFixture) -> Callable[..., MagicMock]:
    """Patch ``async_playwright`` with a request context answering from routes.

    Returns a function taking ``routes`` (URL -> ``(status, body)`` or None
    for a network error) and ``hang`` (URLs whose request never completes),
    which installs the patch and returns the request context mock.
    """

    def _install(
        routes: dict[str, tuple[int, str] | None],
        hang: tuple[str, ...] = (),
    ) -> MagicMock:
        async def _get(url: str, **kwargs: Any) -> MagicMock:
            if url in hang:
                await asyncio.sleep(3600)
            route = routes.get(url)
            if route is None:
                raise PlaywrightError(f"getaddrinfo ENOTFOUND for {url}")
            status, body = route
            response = MagicMock()
            response.status = status
            response.url = url
            response.body = AsyncMock(return_value=body.encode("utf-8"))
            response.dispose = AsyncMock()
            return response

        request_context = MagicMock()
        request_context.get = AsyncMock(side_effect=_get)
        request_context.dispose = AsyncMock()

        playwright = MagicMock()
        playwright.request.new_context = AsyncMock(return_value=request_context)
        playwright.stop = AsyncMock()

        async_playwright_instance = MagicMock()
        async_playwright_instance.start = AsyncMock(return_value=playwright)
        mocker.patch("visibility.probe.async_playwright", return_value=async_playwright_instance)
        return request_context

    return _install


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that run the whole checklist end to end",
    )
