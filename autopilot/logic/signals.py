"""Business logic for ROI, trend and scaling signals."""

from __future__ import annotations

import math
import os
from typing import Sequence

from autopilot.logic.costs import cost_of_assets
from autopilot.store.models import AnalyticsRecord

MIN_HISTORY = int(os.environ.get("MIN_HISTORY", 5))
TREND_BAND = 0.10
MAX_VIDEOS_PER_WEEK = int(os.environ.get("MAX_VIDEOS_PER_WEEK", 14))
DEFAULT_VIDEOS_PER_WEEK = int(os.environ.get("DEFAULT_VIDEOS_PER_WEEK", 7))

# (roi strictly above, multiplier), highest tier first.
SCALE_TIERS = (
    (5.0, 2.0),
    (3.0, 1.5),
    (2.0, 1.3),
)

UP = "up"
DOWN = "down"
NEUTRAL = "neutral"


def newest_first(records: Sequence[AnalyticsRecord]) -> list[AnalyticsRecord]:
    return sorted(records, key=lambda r: r.date, reverse=True)


def total_revenue(records: Sequence[AnalyticsRecord]) -> float:
    return float(sum(float(r.revenue) for r in records))


def total_conversions(records: Sequence[AnalyticsRecord]) -> int:
    return sum(int(r.conversions) for r in records)


def roi(revenue: float, cost: float) -> float:
    if cost == 0:
        return 0.0
    return (revenue - cost) / cost


def entity_roi(records: Sequence[AnalyticsRecord], asset_count: int) -> float:
    return roi(total_revenue(records), cost_of_assets(asset_count))


def has_history(records: Sequence[AnalyticsRecord], minimum: int = MIN_HISTORY) -> bool:
    return len(records) >= minimum


def revenue_trend(records: Sequence[AnalyticsRecord]) -> str:
    """Compare the newer half of the window against the older half."""
    ordered = newest_first(records)
    if len(ordered) < 2:
        return NEUTRAL
    mid = len(ordered) // 2
    recent = total_revenue(ordered[:mid])
    previous = total_revenue(ordered[mid:])
    if recent > previous * (1 + TREND_BAND):
        return UP
    if recent < previous * (1 - TREND_BAND):
        return DOWN
    return NEUTRAL


def scale_multiplier(value: float) -> float:
    for floor, multiplier in SCALE_TIERS:
        if value > floor:
            return multiplier
    return 1.0


def scaled_videos_per_week(current: int | float | None, multiplier: float) -> int:
    base = current if current else DEFAULT_VIDEOS_PER_WEEK
    return min(math.ceil(base * multiplier), MAX_VIDEOS_PER_WEEK)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def rolling_mean(average: float, count: int, sample: float) -> float:
    return (average * count + sample) / (count + 1)
