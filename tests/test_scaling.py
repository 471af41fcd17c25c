from datetime import date, timedelta

import pytest

from autopilot.logic.scaling import AutoScaler
from autopilot.store.config_store import SCALING_CONFIG_KEY
from autopilot.store.models import AnalyticsRecord


@pytest.fixture()
def scaler(entity_store, metrics_reader, config_store):
    return AutoScaler(entity_store, metrics_reader, config_store)


@pytest.mark.asyncio
async def test_scale_winners_preserves_unrelated_keys(scaler, config_store, add_product):
    add_product("winner", "Air Fryer", [10.0] * 10, videos_count=1)
    doc = await config_store.create_document(
        SCALING_CONFIG_KEY,
        {"existingField": {"nested": [1, 2, 3]}, "products": {"other": {"videosPerWeek": 3}}},
    )

    summary = await scaler.scale_winners(2.0)

    assert summary.scaled == 1
    assert summary.products[0].title == "Air Fryer"
    assert summary.products[0].multiplier == 2.0
    stored = await config_store.get_document(SCALING_CONFIG_KEY)
    assert stored.version == doc.version + 1
    assert stored.data["existingField"] == {"nested": [1, 2, 3]}
    assert stored.data["products"]["other"] == {"videosPerWeek": 3}
    entry = stored.data["products"]["winner"]
    assert entry["videosPerWeek"] == 14
    assert entry["priority"] == "high"
    assert entry["autoScale"] is True
    assert entry["multiplier"] == 2.0


@pytest.mark.asyncio
async def test_scale_creates_document_and_compounds_to_cap(scaler, config_store, add_product):
    # ROI of about 2.5 lands in the 1.3x tier.
    add_product("mid", "Desk Lamp", [0.945] * 10, videos_count=10)

    await scaler.scale_winners(2.0)
    first = (await config_store.get_document(SCALING_CONFIG_KEY)).data["products"]["mid"]
    assert first["multiplier"] == 1.3
    assert first["videosPerWeek"] == 10

    for _ in range(5):
        await scaler.scale_winners(2.0)
    last = (await config_store.get_document(SCALING_CONFIG_KEY)).data["products"]["mid"]
    assert last["videosPerWeek"] == 14


@pytest.mark.asyncio
async def test_scale_skips_thin_history_and_low_roi(scaler, config_store, add_product):
    add_product("fresh", "Fresh", [50.0] * 4, videos_count=1)
    add_product("meh", "Meh", [0.05] * 10, videos_count=2)
    add_product("unfilmed", "Unfilmed", [50.0] * 10, videos_count=0)

    summary = await scaler.scale_winners(2.0)

    assert summary.scaled == 0
    assert await config_store.get_document(SCALING_CONFIG_KEY) is None


@pytest.mark.asyncio
async def test_threshold_below_two_scales_at_unit_multiplier(scaler, config_store, add_product):
    # ROI of about 1.5
    add_product("ok", "Okay", [0.675] * 10, videos_count=10)

    summary = await scaler.scale_winners(1.0)

    assert summary.products[0].multiplier == 1.0
    entry = (await config_store.get_document(SCALING_CONFIG_KEY)).data["products"]["ok"]
    assert entry["videosPerWeek"] == 7


@pytest.mark.asyncio
async def test_recommendations_are_read_only_and_sorted(scaler, config_store, add_product):
    add_product("big", "Big", [10.0] * 10, videos_count=1)
    add_product("mid", "Mid", [0.945] * 10, videos_count=10)
    add_product("small", "Small", [0.05] * 10, videos_count=2)

    recs = await scaler.get_recommendations()

    assert [r.product_id for r in recs] == ["big", "mid"]
    assert recs[0].multiplier == 2.0
    assert recs[0].current_videos == 1
    assert recs[0].recommended_videos == 2
    assert recs[1].recommended_videos == 13
    assert recs[1].to_dict()["action"] == "scale"
    assert await config_store.get_document(SCALING_CONFIG_KEY) is None


class BrokenMetrics:
    """Serves one malformed analytics row set for ``bad``."""

    def __init__(self, good):
        self.good = good

    async def list_analytics(self, product_id):
        if product_id == "bad":
            return [AnalyticsRecord(date.today() - timedelta(days=i), None, 0, 0) for i in range(6)]
        return await self.good.list_analytics(product_id)

    async def asset_count(self, product_id):
        return await self.good.asset_count(product_id)


@pytest.mark.asyncio
async def test_one_broken_product_does_not_abort_scaling(entity_store, metrics_reader, config_store, add_product):
    add_product("bad", "Broken", [10.0] * 6, videos_count=1)
    add_product("winner", "Air Fryer", [10.0] * 10, videos_count=1)

    scaler = AutoScaler(entity_store, BrokenMetrics(metrics_reader), config_store)
    summary = await scaler.scale_winners(2.0)

    assert summary.failed == ["bad"]
    assert [p.title for p in summary.products] == ["Air Fryer"]
    products = (await config_store.get_document(SCALING_CONFIG_KEY)).data["products"]
    assert set(products) == {"winner"}
