"""Checks against the live deployment.

Each function turns already-fetched content (or one extra probe) into a
single CheckResult. Unreachable content arrives as an empty string, so every
check degrades to a failure with a diagnostic instead of raising.
"""

import re
from datetime import datetime

from visibility.exceptions import PayloadFormatError
from visibility.freshness import evaluate_generated_at_freshness
from visibility.logger import get_logger
from visibility.markup import (
    extract_favicon_href,
    extract_tag_attribute,
    has_json_ld,
    has_robots_sitemap,
    has_sitemap_lastmod,
)
from visibility.probe import ProbeClient, ProbeOutcome
from visibility.results import CheckResult
from visibility.urls import absolute_https_url, normalize_url_for_match, resolve_https_url

log = get_logger(__name__)

_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


def _meta_property(html: str, name: str) -> str:
    return extract_tag_attribute(html, "meta", "property", name, "content")


def _meta_name(html: str, name: str) -> str:
    return extract_tag_attribute(html, "meta", "name", name, "content")


def _leading_integer(raw: str) -> int | None:
    """Parse the leading integer of a metadata value (``"1200px"`` -> 1200)."""
    match = _LEADING_INTEGER.match(raw)
    return int(match.group(1)) if match else None


def _asset_result(
    label: str,
    outcome: ProbeOutcome | None,
    url: str,
    invalid_details: str,
    missing_details: str,
) -> CheckResult:
    """Shared shape of every "asset is reachable" check."""
    if outcome is not None and outcome.is_ok:
        return CheckResult(label=label, ok=True, details=f"GET {url} returned 200")
    if url:
        status = outcome.status_text if outcome is not None else "no response"
        return CheckResult(label=label, ok=False, details=f"GET {url} returned {status}")
    return CheckResult(label=label, ok=False, details=invalid_details or missing_details)


def check_site_reachable(root: ProbeOutcome) -> CheckResult:
    return CheckResult(
        label="Deployed site is reachable",
        ok=root.is_ok,
        details=None if root.is_ok else f"GET {root.url} returned {root.status_text}",
    )


def check_json_ld(html: str) -> CheckResult:
    ok = has_json_ld(html)
    return CheckResult(
        label="Deployed site has JSON-LD metadata",
        ok=ok,
        details=None if ok else "No application/ld+json script on deployed homepage",
    )


def check_canonical(html: str, base_url: str) -> CheckResult:
    """The canonical link must point at the homepage itself."""
    canonical = extract_tag_attribute(html, "link", "rel", "canonical", "href")
    expected = f"{base_url}/"
    ok = bool(canonical) and normalize_url_for_match(canonical) == normalize_url_for_match(expected)

    if ok:
        details = f"Canonical matches {expected}"
    elif canonical:
        details = f"Canonical mismatch: expected {expected}, found {canonical}"
    else:
        details = "Missing canonical link on deployed homepage"

    return CheckResult(label="Deployed canonical URL matches homepage", ok=ok, details=details)


async def check_open_graph_image(client: ProbeClient, html: str) -> CheckResult:
    """``og:image`` must already be an absolute https URL and must load."""
    raw = _meta_property(html, "og:image")
    url = absolute_https_url(raw) if raw else ""
    outcome = await client.fetch(url) if url else None

    return _asset_result(
        "Deployed Open Graph image reachable",
        outcome,
        url,
        invalid_details=f"og:image must be an absolute https URL (found: {raw})" if raw else "",
        missing_details="Missing og:image metadata on deployed homepage",
    )


def check_open_graph_dimensions(html: str) -> CheckResult:
    width_raw = _meta_property(html, "og:image:width")
    height_raw = _meta_property(html, "og:image:height")
    width = _leading_integer(width_raw)
    height = _leading_integer(height_raw)
    ok = width is not None and height is not None and width > 0 and height > 0

    if ok:
        details = f"og:image dimensions set to {width}x{height}"
    elif not width_raw and not height_raw:
        details = "Missing og:image:width and og:image:height metadata on deployed homepage"
    elif not width_raw:
        details = "Missing og:image:width metadata on deployed homepage"
    elif not height_raw:
        details = "Missing og:image:height metadata on deployed homepage"
    else:
        details = f"Invalid og:image dimension values: width={width_raw}, height={height_raw}"

    return CheckResult(
        label="Deployed Open Graph image dimensions are declared", ok=ok, details=details
    )


async def check_twitter_image(client: ProbeClient, html: str) -> CheckResult:
    """``twitter:image`` (or legacy ``twitter:image:src``) must be https and load."""
    raw = _meta_name(html, "twitter:image") or _meta_name(html, "twitter:image:src")
    url = absolute_https_url(raw) if raw else ""
    outcome = await client.fetch(url) if url else None

    return _asset_result(
        "Deployed Twitter image reachable",
        outcome,
        url,
        invalid_details=(
            f"twitter:image must be an absolute https URL (found: {raw})" if raw else ""
        ),
        missing_details="Missing twitter:image metadata on deployed homepage",
    )


async def check_favicon(client: ProbeClient, html: str, base_url: str) -> CheckResult:
    raw = extract_favicon_href(html)
    url = resolve_https_url(raw, base_url) if raw else ""
    outcome = await client.fetch(url) if url else None

    return _asset_result(
        "Deployed favicon reachable",
        outcome,
        url,
        invalid_details=f"Invalid favicon URL: {raw}" if raw else "",
        missing_details="Missing file-backed favicon metadata on deployed homepage",
    )


async def check_apple_touch_icon(client: ProbeClient, html: str, base_url: str) -> CheckResult:
    raw = extract_tag_attribute(html, "link", "rel", "apple-touch-icon", "href")
    url = resolve_https_url(raw, base_url) if raw else ""
    outcome = await client.fetch(url) if url else None

    return _asset_result(
        "Deployed Apple touch icon reachable",
        outcome,
        url,
        invalid_details=(
            f"apple-touch-icon href must resolve to an https URL (found: {raw})" if raw else ""
        ),
        missing_details="Missing apple-touch-icon link tag on deployed homepage",
    )


def check_deployed_robots(robots: ProbeOutcome) -> CheckResult:
    ok = has_robots_sitemap(robots.text())
    if ok:
        details = None
    elif not robots.is_ok:
        details = f"GET {robots.url} returned {robots.status_text}"
    else:
        details = "No Sitemap directive with an absolute URL"
    return CheckResult(label="Deployed robots.txt has sitemap", ok=ok, details=details)


def check_deployed_sitemap(sitemap: ProbeOutcome) -> CheckResult:
    ok = has_sitemap_lastmod(sitemap.text())
    if ok:
        details = None
    elif not sitemap.is_ok:
        details = f"GET {sitemap.url} returned {sitemap.status_text}"
    else:
        details = "No <lastmod> entry in deployed sitemap"
    return CheckResult(label="Deployed sitemap.xml has <lastmod>", ok=ok, details=details)


def check_data_freshness(
    activity: ProbeOutcome,
    max_age_hours: int,
    now: datetime | None = None,
) -> CheckResult:
    """Evaluate ``generatedAt`` in the deployed activity data."""
    label = f"Deployed data freshness (<= {max_age_hours}h)"
    if not activity.is_ok:
        return CheckResult(label=label, ok=False, details="Could not fetch deployed activity data")

    try:
        payload = activity.json_body()
    except PayloadFormatError as exc:
        log.warning(
            "Activity data is not valid JSON", url=activity.url, error=exc.context["reason"]
        )
        return CheckResult(
            label=label, ok=False, details="Invalid activity.json format on deployed site"
        )

    generated_at = payload.get("generatedAt") if isinstance(payload, dict) else None
    freshness = evaluate_generated_at_freshness(generated_at, now=now, max_age_hours=max_age_hours)
    return CheckResult(label=label, ok=freshness.ok, details=freshness.details)
