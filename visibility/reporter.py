"""Text report for a visibility run.

The report is advisory: failing checks are printed as warnings and the
summary only counts them. Nothing here decides the process exit status.
"""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from visibility.results import CheckResult

REPORT_TITLE = "External visibility checks"


class ReportSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    passed: int
    failed: int

    @property
    def has_warnings(self) -> bool:
        return self.failed > 0


def summarize(results: Sequence[CheckResult]) -> ReportSummary:
    failed = sum(1 for result in results if not result.ok)
    return ReportSummary(total=len(results), passed=len(results) - failed, failed=failed)


def render_report(results: Sequence[CheckResult]) -> str:
    """Render results in their recorded order.

    One ``- PASS:``/``- WARN:`` line per check, plus an indented details line
    under each failing check that has one. The warning count goes to the log,
    not into the report.

    Example output::

        External visibility checks
        - PASS: Deployed site is reachable
        - WARN: Deployed canonical URL matches homepage
          Missing canonical link on deployed homepage
    """
    lines = [REPORT_TITLE]
    for result in results:
        lines.append(f"- {'PASS' if result.ok else 'WARN'}: {result.label}")
        if result.details and not result.ok:
            lines.append(f"  {result.details}")

    return "\n".join(lines)
