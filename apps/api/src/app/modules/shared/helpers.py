"""Helpers shared by the hours-tracking modules."""

import math
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def round_hours(value: float | None) -> float:
    """
    Round an hour quantity to two decimal places, half up.

    Applied at every point hours are computed or summed so that stored
    durations and report totals agree.
    """
    if value is None:
        return 0.0
    return math.floor(float(value) * 100 + 0.5) / 100
