"""Freshness evaluation for the deployed activity data."""

import math
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

DEFAULT_MAX_AGE_HOURS = 18


class FreshnessEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    details: str


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp; values without an offset are UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def evaluate_generated_at_freshness(
    generated_at: Any,
    now: datetime | None = None,
    max_age_hours: float = DEFAULT_MAX_AGE_HOURS,
) -> FreshnessEvaluation:
    """Classify the age of a ``generatedAt`` timestamp.

    A timestamp in the future always fails, whatever the threshold, since it
    means either clock skew or a broken generator. Otherwise the data is fresh
    when its age is at most ``max_age_hours``. Ages are reported in whole
    hours, rounded half up.

    Args:
        generated_at: Raw ``generatedAt`` value from activity.json.
        now: Reference instant; defaults to the current time.
        max_age_hours: Largest acceptable age.

    Returns:
        FreshnessEvaluation with a human-readable explanation.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    if not isinstance(generated_at, str):
        return FreshnessEvaluation(
            ok=False,
            details="Missing generatedAt in deployed activity.json",
        )

    timestamp = _parse_timestamp(generated_at)
    if timestamp is None:
        return FreshnessEvaluation(
            ok=False,
            details="Invalid timestamp in deployed activity.json",
        )

    age_hours = (now - timestamp).total_seconds() / 3600
    if age_hours < 0:
        return FreshnessEvaluation(
            ok=False,
            details=f"generatedAt is in the future ({_round_half_up(abs(age_hours))}h ahead)",
        )

    return FreshnessEvaluation(
        ok=age_hours <= max_age_hours,
        details=f"Deployed data is {_round_half_up(age_hours)}h old",
    )
