"""Production cost estimates for generated assets."""

from __future__ import annotations

import os

# Per-video spend by generation service, in dollars.
VIDEO_COST_BREAKDOWN = {
    "script": 0.10,
    "voice": 0.09,
    "render": 0.04,
    "thumbnail": 0.04,
}

UNIT_COST = float(os.environ.get("VIDEO_UNIT_COST", round(sum(VIDEO_COST_BREAKDOWN.values()), 4)))


def cost_of_assets(count: int, unit_cost: float = UNIT_COST) -> float:
    return count * unit_cost
