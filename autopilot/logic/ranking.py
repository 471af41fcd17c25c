"""Ordering of optimizer recommendations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from autopilot.logic.scaling import ScaleRecommendation
    from autopilot.logic.strategy import Recommendation


def rank_recommendations(recommendations: Sequence[Recommendation]) -> list[Recommendation]:
    """Most urgent action first; within one action, the larger ROI gap first."""

    def urgency(rec: Recommendation) -> tuple[int, float]:
        # Kills are most urgent at the bottom of the ROI range, everything else at the top.
        gap = -rec.roi if rec.action == "kill" else rec.roi
        return rec.priority, gap

    return sorted(recommendations, key=urgency, reverse=True)


def rank_scale_candidates(candidates: Sequence[ScaleRecommendation]) -> list[ScaleRecommendation]:
    return sorted(candidates, key=lambda c: c.roi, reverse=True)
