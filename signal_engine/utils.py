"""Shared numeric helpers used across the signal engine modules."""
from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, datetime


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves upward (``2.5 -> 3``, ``0.25 -> 0.3`` at one digit).

    Unlike the built-in ``round`` this never rounds half to even.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round2(value: float) -> float:
    return round_half_up(value, 2)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def as_naive_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; compare everything as naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def percentile_floor(sorted_values: Sequence[float], fraction: float) -> float:
    """Lower sorted-index percentile: ``sorted[floor(n * fraction)]``, 0 when empty.

    No interpolation. *sorted_values* must already be ascending.
    """
    if not sorted_values:
        return 0.0
    idx = min(len(sorted_values) - 1, math.floor(len(sorted_values) * fraction))
    return float(sorted_values[idx])
