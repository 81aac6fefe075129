"""PWA manifest checks.

Install prompts need a manifest declaring square icons at 192x192 and
512x512. The manifest is located through ``<link rel="manifest">``, fetched
and parsed, and each required icon's ``src`` is resolved against the
manifest's own URL. A second check then confirms the resolved icon files are
actually served.
"""

import asyncio
from typing import Any

from pydantic import BaseModel, ConfigDict

from visibility.exceptions import PayloadFormatError
from visibility.logger import get_logger
from visibility.markup import extract_tag_attribute
from visibility.probe import ProbeClient, ProbeOutcome
from visibility.results import CheckResult
from visibility.urls import resolve_https_url, resolve_https_url_from_document

log = get_logger(__name__)

REQUIRED_MANIFEST_ICON_SIZES: tuple[str, ...] = ("192x192", "512x512")

MANIFEST_LABEL = "Deployed PWA manifest has required square icons"
ICON_ASSETS_LABEL = "Deployed PWA icon assets are reachable"


class ManifestInspection(BaseModel):
    """What the manifest check found.

    Attributes:
        ok: Every required size has an icon with an https ``src``.
        details: Diagnostic for the report.
        icon_urls: Resolved icon URL per required size, for sizes that have one.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    details: str
    icon_urls: dict[str, str] = {}

    def to_result(self) -> CheckResult:
        return CheckResult(label=MANIFEST_LABEL, ok=self.ok, details=self.details)


def icon_has_required_size(icon: dict[str, Any], expected_size: str) -> bool:
    """True when the icon's ``sizes`` token list contains ``expected_size``."""
    sizes = icon.get("sizes")
    return isinstance(sizes, str) and expected_size.lower() in sizes.lower().split()


def _find_icon(icons: list[Any], size: str) -> dict[str, Any] | None:
    for entry in icons:
        if isinstance(entry, dict) and icon_has_required_size(entry, size):
            return entry
    return None


def evaluate_manifest_icons(payload: Any, manifest_url: str) -> ManifestInspection:
    """Check a parsed manifest for the required square icons.

    Sizes with no usable icon and sizes whose ``src`` does not resolve to
    https are collected separately and reported together.
    """
    icons = payload.get("icons") if isinstance(payload, dict) else None
    if not isinstance(icons, list):
        return ManifestInspection(ok=False, details="Manifest is missing icons[] entries")

    icon_urls: dict[str, str] = {}
    missing_sizes: list[str] = []
    invalid_icon_urls: list[str] = []

    for size in REQUIRED_MANIFEST_ICON_SIZES:
        icon = _find_icon(icons, size)
        src = icon.get("src") if icon is not None else None
        if not isinstance(src, str) or not src.strip():
            missing_sizes.append(size)
            continue

        icon_url = resolve_https_url_from_document(src, manifest_url)
        if not icon_url:
            invalid_icon_urls.append(f"{size} ({src})")
            continue
        icon_urls[size] = icon_url

    if missing_sizes or invalid_icon_urls:
        parts = []
        if missing_sizes:
            parts.append(f"Missing required icon sizes: {', '.join(missing_sizes)}")
        if invalid_icon_urls:
            parts.append(
                f"Icon URLs must resolve to absolute https URLs: {', '.join(invalid_icon_urls)}"
            )
        return ManifestInspection(ok=False, details=". ".join(parts), icon_urls=icon_urls)

    return ManifestInspection(
        ok=True,
        details=f"Manifest contains {' and '.join(REQUIRED_MANIFEST_ICON_SIZES)} icons",
        icon_urls=icon_urls,
    )


async def inspect_manifest(client: ProbeClient, html: str, base_url: str) -> ManifestInspection:
    """Locate, fetch and evaluate the manifest linked from the homepage."""
    manifest_raw = extract_tag_attribute(html, "link", "rel", "manifest", "href")
    if not manifest_raw:
        return ManifestInspection(
            ok=False, details="Missing manifest link metadata on deployed homepage"
        )

    manifest_url = resolve_https_url(manifest_raw, base_url)
    if not manifest_url:
        return ManifestInspection(
            ok=False,
            details=f"Manifest URL must resolve to absolute https URL (found: {manifest_raw})",
        )

    outcome = await client.fetch(manifest_url, read_body=True)
    if not outcome.is_ok:
        return ManifestInspection(
            ok=False, details=f"GET {manifest_url} returned {outcome.status_text}"
        )

    try:
        payload = outcome.json_body()
    except PayloadFormatError as exc:
        log.warning("Manifest is not valid JSON", url=manifest_url, error=exc.context["reason"])
        return ManifestInspection(ok=False, details=f"Manifest at {manifest_url} is not valid JSON")

    return evaluate_manifest_icons(payload, manifest_url)


async def _probe_icon(client: ProbeClient, url: str | None) -> ProbeOutcome | None:
    if not url:
        return None
    return await client.fetch(url)


async def check_manifest_icon_assets(
    client: ProbeClient, inspection: ManifestInspection
) -> CheckResult:
    """Fetch every resolved required icon concurrently.

    Sizes without a resolved URL count as failures.
    """
    sizes = REQUIRED_MANIFEST_ICON_SIZES
    outcomes = await asyncio.gather(
        *(_probe_icon(client, inspection.icon_urls.get(size)) for size in sizes)
    )

    parts = []
    for size, outcome in zip(sizes, outcomes):
        if outcome is None:
            parts.append(f"{size}: missing manifest icon URL")
        else:
            parts.append(f"{size}: GET {outcome.url} returned {outcome.status_text}")

    return CheckResult(
        label=ICON_ASSETS_LABEL,
        ok=all(outcome is not None and outcome.is_ok for outcome in outcomes),
        details="; ".join(parts),
    )
