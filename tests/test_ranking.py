from autopilot.logic.ranking import rank_recommendations, rank_scale_candidates
from autopilot.logic.scaling import ScaleRecommendation
from autopilot.logic.strategy import PRIORITIES, Recommendation


def _rec(product_id, action, roi):
    return Recommendation(
        product_id=product_id,
        product_title=product_id.title(),
        action=action,
        reason="",
        priority=PRIORITIES[action],
        roi=roi,
        revenue=0.0,
        conversions=0,
        trend="neutral",
    )


def test_rank_recommendations_by_priority_then_gap():
    recs = [
        _rec("steady", "maintain", 40.0),
        _rec("bad", "kill", 0.2),
        _rec("worse", "kill", -0.9),
        _rec("rising", "scale", 3.0),
        _rec("rocket", "scale", 12.0),
        _rec("slump", "optimize", 0.8),
    ]
    ranked = rank_recommendations(recs)
    assert [r.product_id for r in ranked] == ["worse", "bad", "rocket", "rising", "slump", "steady"]


def test_rank_scale_candidates_by_roi():
    candidates = [
        ScaleRecommendation("a", "A", 2.5, 3, 4, 1.3),
        ScaleRecommendation("b", "B", 9.0, 1, 2, 2.0),
        ScaleRecommendation("c", "C", 4.0, 2, 3, 1.5),
    ]
    assert [c.product_id for c in rank_scale_candidates(candidates)] == ["b", "c", "a"]
