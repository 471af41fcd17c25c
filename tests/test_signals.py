from datetime import date, timedelta

import pytest

from autopilot.logic import costs, signals
from autopilot.store.models import AnalyticsRecord


def _records(revenues):
    today = date.today()
    return [AnalyticsRecord(today - timedelta(days=i), r, 10, 1) for i, r in enumerate(revenues)]


def test_cost_of_assets():
    assert costs.cost_of_assets(0) == 0
    assert costs.cost_of_assets(1) == pytest.approx(0.27)
    assert costs.cost_of_assets(10) == pytest.approx(2.7)


def test_roi_zero_cost_is_zero():
    assert signals.roi(100.0, 0) == 0.0
    assert signals.roi(0.0, 0) == 0.0
    assert signals.roi(3.0, 1.0) == 2.0


def test_trend_uses_newer_half():
    assert signals.revenue_trend(_records([15, 15, 15, 5, 5, 5])) == signals.UP
    assert signals.revenue_trend(_records([5, 5, 5, 15, 15, 15])) == signals.DOWN
    assert signals.revenue_trend(_records([10, 10, 10, 10])) == signals.NEUTRAL
    assert signals.revenue_trend(_records([10])) == signals.NEUTRAL


def test_trend_sorts_records_before_splitting():
    shuffled = list(reversed(_records([15, 15, 5, 5])))
    assert signals.revenue_trend(shuffled) == signals.UP


def test_trend_from_zero_previous_revenue():
    assert signals.revenue_trend(_records([1, 0])) == signals.UP
    assert signals.revenue_trend(_records([0, 0])) == signals.NEUTRAL


def test_scale_multiplier_is_monotonic_step():
    rois = [0.0, 1.9, 2.0, 2.01, 3.0, 3.5, 5.0, 5.01, 400.0]
    multipliers = [signals.scale_multiplier(r) for r in rois]
    assert multipliers == [1.0, 1.0, 1.0, 1.3, 1.3, 1.5, 1.5, 2.0, 2.0]
    assert multipliers == sorted(multipliers)
    assert max(multipliers) <= 2.0


def test_scaled_videos_per_week_is_capped():
    assert signals.scaled_videos_per_week(None, 1.3) == 10
    assert signals.scaled_videos_per_week(4, 1.3) == 6
    assert signals.scaled_videos_per_week(10, 2.0) == 14
    assert signals.scaled_videos_per_week(30, 1.0) == 14


def test_round_half_up():
    assert signals.round_half_up(2.5) == 3
    assert signals.round_half_up(2.4) == 2
    assert signals.round_half_up(0) == 0


def test_rolling_mean_matches_closed_form():
    avg, uses = 4.0, 3
    samples = [10.0, 1.0, 7.0]
    for sample in samples:
        avg = signals.rolling_mean(avg, uses, sample)
        uses += 1
    assert avg == pytest.approx((4.0 * 3 + sum(samples)) / 6)
