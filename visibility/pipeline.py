"""Visibility checklist orchestration.

A run moves forward through fixed phases:

    INIT -> LOCAL_CHECKS -> REPO_METADATA -> DEPLOYED_BASE_URL
         -> DEPLOYED_FAN_OUT -> DONE

Each phase records its results and hands over to the next one whatever
happened; a failing probe only ever fails its own check. Probes that depend on
nothing are issued together (the four base deployed fetches, the two manifest
icons); probes that need a value extracted from an earlier response run after
it.
"""

import asyncio
from datetime import datetime
from enum import Enum
from pathlib import Path

from config.settings import VisibilityConfig, get_config
from visibility.deployed import (
    check_apple_touch_icon,
    check_canonical,
    check_data_freshness,
    check_deployed_robots,
    check_deployed_sitemap,
    check_favicon,
    check_json_ld,
    check_open_graph_dimensions,
    check_open_graph_image,
    check_site_reachable,
    check_twitter_image,
)
from visibility.logger import get_logger
from visibility.manifest import check_manifest_icon_assets, inspect_manifest
from visibility.markup import has_json_ld, has_robots_sitemap, has_sitemap_lastmod
from visibility.probe import ProbeClient
from visibility.repository import evaluate_repository_metadata, fetch_repository_metadata
from visibility.results import CheckResult, CheckResultLog
from visibility.urls import BaseUrlResolution, resolve_deployed_base_url

log = get_logger(__name__)


class Phase(str, Enum):
    INIT = "init"
    LOCAL_CHECKS = "local_checks"
    REPO_METADATA = "repo_metadata"
    DEPLOYED_BASE_URL = "deployed_base_url"
    DEPLOYED_FAN_OUT = "deployed_fan_out"
    DONE = "done"


def read_if_exists(path: Path) -> str:
    """Read a local text file; a missing or unreadable file is empty content."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.debug("Local file unavailable", path=str(path), error=str(exc))
        return ""


class VisibilityChecker:
    """Runs the full visibility checklist once.

    Attributes:
        client: ProbeClient used for every network request.
        config: VisibilityConfig with paths, URLs and thresholds.
        phase: Current phase of the run.
        now: Reference instant for the freshness check (wall clock if None).

    Example:
        async with ProbeClient.create(config) as client:
            results = await VisibilityChecker(client, config).run()
    """

    def __init__(
        self,
        client: ProbeClient,
        config: VisibilityConfig | None = None,
        now: datetime | None = None,
    ) -> None:
        self.client = client
        self.config = config or get_config()
        self.now = now
        self.phase = Phase.INIT

    def _advance(self, phase: Phase) -> None:
        log.debug("Phase transition", previous=self.phase.value, current=phase.value)
        self.phase = phase

    async def run(self) -> list[CheckResult]:
        """Execute every check and return the results in report order."""
        results = CheckResultLog()

        self._advance(Phase.LOCAL_CHECKS)
        results.extend(self.run_local_checks())

        self._advance(Phase.REPO_METADATA)
        homepage = await self._run_repository_checks(results)

        self._advance(Phase.DEPLOYED_BASE_URL)
        resolution = self.resolve_base_url(homepage)

        self._advance(Phase.DEPLOYED_FAN_OUT)
        await self._run_deployed_checks(results, resolution.base_url)

        self._advance(Phase.DONE)
        log.info(
            "Visibility checks complete",
            total=len(results),
            failed=len(results.failed),
            base_url=resolution.base_url,
        )
        return results.as_list()

    def run_local_checks(self) -> list[CheckResult]:
        """Checks against the files that will be deployed."""
        index_path = self.config.index_html_path
        sitemap_path = self.config.sitemap_path
        robots_path = self.config.robots_path

        json_ld = has_json_ld(read_if_exists(index_path))
        lastmod = has_sitemap_lastmod(read_if_exists(sitemap_path))
        robots = has_robots_sitemap(read_if_exists(robots_path))

        return [
            CheckResult(
                label="Structured metadata (application/ld+json) is present",
                ok=json_ld,
                details=None if json_ld else f"No application/ld+json script in {index_path}",
            ),
            CheckResult(
                label="sitemap.xml includes <lastmod>",
                ok=lastmod,
                details=None if lastmod else f"No <lastmod> entry in {sitemap_path}",
            ),
            CheckResult(
                label="robots.txt includes a Sitemap directive",
                ok=robots,
                details=None if robots else f"No absolute Sitemap directive in {robots_path}",
            ),
        ]

    async def _run_repository_checks(self, results: CheckResultLog) -> str:
        """Record the metadata checks and return the homepage ('' if unknown)."""
        metadata = await fetch_repository_metadata(self.client, self.config)
        if metadata is None:
            return ""
        results.extend(evaluate_repository_metadata(metadata, self.config))
        return metadata.homepage or ""

    def resolve_base_url(self, homepage: str) -> BaseUrlResolution:
        resolution = resolve_deployed_base_url(homepage, self.config.default_deployed_base_url)
        if resolution.used_fallback:
            log.warning(
                "Repository homepage missing or invalid, using fallback deployed URL",
                fallback=resolution.base_url,
            )
        return resolution

    async def _run_deployed_checks(self, results: CheckResultLog, base_url: str) -> None:
        root, robots, sitemap, activity = await asyncio.gather(
            self.client.fetch(f"{base_url}/", read_body=True),
            self.client.fetch(f"{base_url}/robots.txt", read_body=True),
            self.client.fetch(f"{base_url}/sitemap.xml", read_body=True),
            self.client.fetch(f"{base_url}/data/activity.json", read_body=True),
        )
        html = root.text()

        results.append(check_site_reachable(root))
        results.append(check_json_ld(html))
        results.append(check_canonical(html, base_url))
        results.append(await check_open_graph_image(self.client, html))
        results.append(check_open_graph_dimensions(html))
        results.append(await check_twitter_image(self.client, html))

        manifest = await inspect_manifest(self.client, html, base_url)
        results.append(manifest.to_result())
        results.append(await check_manifest_icon_assets(self.client, manifest))

        results.append(await check_favicon(self.client, html, base_url))
        results.append(await check_apple_touch_icon(self.client, html, base_url))
        results.append(check_deployed_robots(robots))
        results.append(check_deployed_sitemap(sitemap))
        results.append(
            check_data_freshness(activity, self.config.freshness_max_age_hours, now=self.now)
        )
