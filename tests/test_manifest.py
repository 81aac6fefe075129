"""Tests for the PWA manifest checks."""

import json
from typing import Any

import pytest

from visibility.manifest import (
    ICON_ASSETS_LABEL,
    MANIFEST_LABEL,
    ManifestInspection,
    check_manifest_icon_assets,
    evaluate_manifest_icons,
    icon_has_required_size,
    inspect_manifest,
)

BASE_URL = "https://hivemoot.github.io/colony"
MANIFEST_URL = f"{BASE_URL}/manifest.webmanifest"


class TestIconHasRequiredSize:
    @pytest.mark.parametrize(
        "sizes, expected",
        [
            ("192x192", True),
            ("192x192 96x96", True),
            ("48x48   192X192", True),
            ("1192x1192", False),
            ("any", False),
            (None, False),
            (192, False),
        ],
    )
    def test_sizes_token_list(self, sizes: Any, expected: bool) -> None:
        assert icon_has_required_size({"sizes": sizes}, "192x192") is expected


class TestEvaluateManifestIcons:
    """Test suite for evaluate_manifest_icons."""

    def test_required_icons_present(self, manifest_payload: dict[str, Any]) -> None:
        inspection = evaluate_manifest_icons(manifest_payload, MANIFEST_URL)

        assert inspection.ok is True
        assert inspection.details == "Manifest contains 192x192 and 512x512 icons"
        assert inspection.icon_urls == {
            "192x192": f"{BASE_URL}/pwa-192x192.png",
            "512x512": f"{BASE_URL}/pwa-512x512.png",
        }

    def test_icon_src_resolved_against_manifest_location(self) -> None:
        payload = {
            "icons": [
                {"src": "icons/192.png", "sizes": "192x192"},
                {"src": "/icons/512.png", "sizes": "512x512 256x256"},
            ]
        }

        inspection = evaluate_manifest_icons(payload, "https://a.org/app/assets/site.webmanifest")

        assert inspection.icon_urls == {
            "192x192": "https://a.org/app/assets/icons/192.png",
            "512x512": "https://a.org/icons/512.png",
        }

    @pytest.mark.parametrize("payload", [{}, {"icons": "pwa.png"}, [], "manifest", None])
    def test_missing_icons_array(self, payload: Any) -> None:
        inspection = evaluate_manifest_icons(payload, MANIFEST_URL)

        assert inspection.ok is False
        assert inspection.details == "Manifest is missing icons[] entries"

    def test_missing_size_and_blank_src(self) -> None:
        payload = {"icons": [{"src": "  ", "sizes": "192x192"}, "not-an-icon"]}

        inspection = evaluate_manifest_icons(payload, MANIFEST_URL)

        assert inspection.ok is False
        assert inspection.details == "Missing required icon sizes: 192x192, 512x512"

    def test_missing_and_invalid_reported_together(self) -> None:
        payload = {"icons": [{"src": "http://cdn.example.org/192.png", "sizes": "192x192"}]}

        inspection = evaluate_manifest_icons(payload, MANIFEST_URL)

        assert inspection.ok is False
        assert inspection.details == (
            "Missing required icon sizes: 512x512. "
            "Icon URLs must resolve to absolute https URLs: "
            "192x192 (http://cdn.example.org/192.png)"
        )
        assert inspection.icon_urls == {}

    def test_to_result(self) -> None:
        result = ManifestInspection(ok=False, details="x").to_result()

        assert result.label == MANIFEST_LABEL
        assert result.ok is False
        assert result.details == "x"


class TestInspectManifest:
    """Test suite for locating and fetching the manifest."""

    @pytest.mark.asyncio
    async def test_healthy_manifest(self, fake_client: Any, homepage_html_factory: Any) -> None:
        inspection = await inspect_manifest(fake_client, homepage_html_factory(), BASE_URL)

        assert inspection.ok is True
        assert MANIFEST_URL in fake_client.requested_urls

    @pytest.mark.asyncio
    async def test_missing_link(self, fake_client: Any, homepage_html_factory: Any) -> None:
        html = homepage_html_factory(manifest=None)

        inspection = await inspect_manifest(fake_client, html, BASE_URL)

        assert inspection.details == "Missing manifest link metadata on deployed homepage"
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_non_https_link(self, fake_client: Any, homepage_html_factory: Any) -> None:
        html = homepage_html_factory(
            manifest='<link rel="manifest" href="http://hivemoot.github.io/colony/m.json">'
        )

        inspection = await inspect_manifest(fake_client, html, BASE_URL)

        assert inspection.ok is False
        assert inspection.details == (
            "Manifest URL must resolve to absolute https URL "
            "(found: http://hivemoot.github.io/colony/m.json)"
        )

    @pytest.mark.asyncio
    async def test_manifest_not_served(
        self, fake_client: Any, homepage_html_factory: Any, site_routes: dict[str, Any]
    ) -> None:
        site_routes[MANIFEST_URL] = (404, "Not Found")

        inspection = await inspect_manifest(fake_client, homepage_html_factory(), BASE_URL)

        assert inspection.details == f"GET {MANIFEST_URL} returned 404"

    @pytest.mark.asyncio
    async def test_manifest_not_json(
        self, fake_client: Any, homepage_html_factory: Any, site_routes: dict[str, Any]
    ) -> None:
        site_routes[MANIFEST_URL] = (200, "<html>SPA fallback</html>")

        inspection = await inspect_manifest(fake_client, homepage_html_factory(), BASE_URL)

        assert inspection.ok is False
        assert inspection.details == f"Manifest at {MANIFEST_URL} is not valid JSON"

    @pytest.mark.asyncio
    async def test_deeply_nested_manifest(
        self, fake_client: Any, homepage_html_factory: Any, site_routes: dict[str, Any]
    ) -> None:
        site_routes[MANIFEST_URL] = (200, '{"icons": ' + "[" * 100_000 + "]" * 100_000 + "}")

        inspection = await inspect_manifest(fake_client, homepage_html_factory(), BASE_URL)

        assert inspection.ok is False
        assert inspection.details == f"Manifest at {MANIFEST_URL} is not valid JSON"


class TestCheckManifestIconAssets:
    """Test suite for the icon reachability check."""

    @pytest.mark.asyncio
    async def test_all_icons_served(
        self, fake_client: Any, manifest_payload: dict[str, Any]
    ) -> None:
        inspection = evaluate_manifest_icons(manifest_payload, MANIFEST_URL)

        result = await check_manifest_icon_assets(fake_client, inspection)

        assert result.label == ICON_ASSETS_LABEL
        assert result.ok is True
        assert result.details == (
            f"192x192: GET {BASE_URL}/pwa-192x192.png returned 200; "
            f"512x512: GET {BASE_URL}/pwa-512x512.png returned 200"
        )

    @pytest.mark.asyncio
    async def test_one_icon_missing_on_server(
        self, fake_client: Any, manifest_payload: dict[str, Any], site_routes: dict[str, Any]
    ) -> None:
        site_routes[f"{BASE_URL}/pwa-512x512.png"] = (404, "")
        inspection = evaluate_manifest_icons(manifest_payload, MANIFEST_URL)

        result = await check_manifest_icon_assets(fake_client, inspection)

        assert result.ok is False
        assert f"512x512: GET {BASE_URL}/pwa-512x512.png returned 404" in result.details

    @pytest.mark.asyncio
    async def test_unresolved_icons_count_as_failures(self, fake_client: Any) -> None:
        inspection = ManifestInspection(
            ok=False,
            details="Manifest is missing icons[] entries",
        )

        result = await check_manifest_icon_assets(fake_client, inspection)

        assert result.ok is False
        assert result.details == (
            "192x192: missing manifest icon URL; 512x512: missing manifest icon URL"
        )
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_partial_manifest_end_to_end(
        self, fake_client: Any, site_routes: dict[str, Any], homepage_html_factory: Any
    ) -> None:
        site_routes[MANIFEST_URL] = (
            200,
            json.dumps({"icons": [{"src": "pwa-192x192.png", "sizes": "192x192"}]}),
        )

        inspection = await inspect_manifest(fake_client, homepage_html_factory(), BASE_URL)
        result = await check_manifest_icon_assets(fake_client, inspection)

        assert inspection.details == "Missing required icon sizes: 512x512"
        assert result.ok is False
        assert result.details == (
            f"192x192: GET {BASE_URL}/pwa-192x192.png returned 200; "
            "512x512: missing manifest icon URL"
        )
