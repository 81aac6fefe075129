"""Check results and the ordered log they are recorded in."""

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field

from visibility.exceptions import DuplicateCheckLabelError


class CheckResult(BaseModel):
    """Outcome of a single visibility check.

    Attributes:
        label: Stable, human-readable identifier of the check.
        ok: Whether the check passed.
        details: Diagnostic text. Every check a human has to act on sets it
            when failing.
    """

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1)
    ok: bool
    details: str | None = None


class CheckResultLog:
    """Append-only, ordered record of the checks run in one invocation.

    Labels are unique within a log; downstream consumers key off them.

    Example:
        results = CheckResultLog()
        results.record("Deployed site is reachable", ok=True)
        results.record("Deployed favicon reachable", ok=False, details="...")
    """

    def __init__(self) -> None:
        self._results: list[CheckResult] = []
        self._labels: set[str] = set()

    def append(self, result: CheckResult) -> CheckResult:
        """Append a result, rejecting a label already recorded.

        Raises:
            DuplicateCheckLabelError: If the label was already used this run.
        """
        if result.label in self._labels:
            raise DuplicateCheckLabelError(result.label)
        self._labels.add(result.label)
        self._results.append(result)
        return result

    def record(self, label: str, ok: bool, details: str | None = None) -> CheckResult:
        return self.append(CheckResult(label=label, ok=ok, details=details))

    def extend(self, results: Iterable[CheckResult]) -> None:
        for result in results:
            self.append(result)

    def as_list(self) -> list[CheckResult]:
        return list(self._results)

    @property
    def failed(self) -> list[CheckResult]:
        return [result for result in self._results if not result.ok]

    def __iter__(self) -> Iterator[CheckResult]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)
