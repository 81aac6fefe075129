"""Visibility checker entry point.

Bootstraps configuration and logging, runs the checklist once, and prints the
report to stdout. The warning count goes to the stderr log. The checker
reports and never gates: the exit status is 0 whether checks pass or fail,
and also when the checks cannot run at all.

Usage:
    python main.py
    # or, once installed
    colony-visibility
"""

import asyncio
import sys

from loguru import logger
from pydantic import ValidationError

from config.settings import VisibilityConfig, get_config
from visibility.exceptions import LoggingInitializationError, ProbeClientError
from visibility.logger import configure_logging
from visibility.pipeline import VisibilityChecker
from visibility.probe import ProbeClient
from visibility.reporter import render_report, summarize
from visibility.results import CheckResult


async def _run_checks(config: VisibilityConfig) -> list[CheckResult]:
    """Open the probe client, run every check, and close the client."""
    async with ProbeClient.create(config) as client:
        return await VisibilityChecker(client, config).run()


def main() -> int:
    """Application entry point.

    Returns:
        Process exit code: 0 in every case except a user interrupt.
    """
    # Step 1: Load configuration (validates via Pydantic)
    try:
        config = get_config()
    except ValidationError as exc:
        # Cannot log yet - print to stderr
        print(f"WARN: visibility checks skipped, invalid configuration: {exc}", file=sys.stderr)
        return 0

    # Step 2: Initialize logging; a broken file sink leaves the console sink in place
    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        logger.warning("File logging disabled", error=str(exc))

    # Step 3: Run the checklist
    try:
        results = asyncio.run(_run_checks(config))
    except ProbeClientError as exc:
        logger.error("Visibility checks could not run", error=exc.message)
        return 0
    except KeyboardInterrupt:
        logger.warning("Visibility checks interrupted by user (Ctrl+C)")
        return 130

    print(render_report(results))

    summary = summarize(results)
    if summary.has_warnings:
        logger.warning(f"Visibility warnings: {summary.failed}/{summary.total} checks failed.")
    logger.info(
        "Visibility report printed",
        total=summary.total,
        passed=summary.passed,
        failed=summary.failed,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
