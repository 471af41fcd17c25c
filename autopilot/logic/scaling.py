"""Auto-scaling of production targets for high-ROI products."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from autopilot.logic import signals
from autopilot.logic.ranking import rank_scale_candidates
from autopilot.logic.strategy import COMPUTATION_ERRORS
from autopilot.store.config_store import SCALING_CONFIG_KEY, ConfigStore
from autopilot.store.entities import EntityStore, load_active_entities
from autopilot.store.metrics import MetricsReader
from autopilot.store.models import ManagedEntity
from autopilot.utils.dates import iso_timestamp
from autopilot.utils.retry import retry_on_conflict

logger = logging.getLogger(__name__)

RECOMMENDATION_THRESHOLD = 2.0


@dataclass(slots=True)
class ScaledProduct:
    title: str
    multiplier: float


@dataclass(slots=True)
class ScaleSummary:
    scaled: int = 0
    products: list[ScaledProduct] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scaled": self.scaled,
            "products": [{"title": p.title, "multiplier": p.multiplier} for p in self.products],
            "failed": list(self.failed),
        }


@dataclass(slots=True)
class ScaleRecommendation:
    product_id: str
    product_title: str
    roi: float
    current_videos: int
    recommended_videos: int
    multiplier: float
    action: str = "scale"

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "productTitle": self.product_title,
            "roi": self.roi,
            "currentVideos": self.current_videos,
            "recommendedVideos": self.recommended_videos,
            "multiplier": self.multiplier,
            "action": self.action,
        }


class AutoScaler:
    def __init__(self, entities: EntityStore, metrics: MetricsReader, config: ConfigStore) -> None:
        self.entities = entities
        self.metrics = metrics
        self.config = config

    async def scale_winners(self, threshold: float) -> ScaleSummary:
        logger.info("Scaling products with ROI > %s", threshold)
        summary = ScaleSummary()
        for entity in await load_active_entities(self.entities, self.metrics):
            try:
                value = self._eligible_roi(entity)
            except COMPUTATION_ERRORS:
                logger.exception("Could not evaluate product %s", entity.id)
                summary.failed.append(entity.id)
                continue
            if value is None or value <= threshold:
                continue
            multiplier = signals.scale_multiplier(value)
            await self._update_product_config(entity.id, multiplier)
            summary.products.append(ScaledProduct(title=entity.title, multiplier=multiplier))
        summary.scaled = len(summary.products)
        logger.info("Scaled %s winning products", summary.scaled)
        return summary

    async def get_recommendations(self, threshold: float = RECOMMENDATION_THRESHOLD) -> list[ScaleRecommendation]:
        candidates: list[ScaleRecommendation] = []
        for entity in await load_active_entities(self.entities, self.metrics):
            try:
                value = self._eligible_roi(entity)
            except COMPUTATION_ERRORS:
                logger.exception("Could not evaluate product %s", entity.id)
                continue
            if value is None or value <= threshold:
                continue
            multiplier = signals.scale_multiplier(value)
            candidates.append(
                ScaleRecommendation(
                    product_id=entity.id,
                    product_title=entity.title,
                    roi=value,
                    current_videos=entity.asset_count,
                    recommended_videos=signals.round_half_up(entity.asset_count * multiplier),
                    multiplier=multiplier,
                )
            )
        return rank_scale_candidates(candidates)

    def _eligible_roi(self, entity: ManagedEntity) -> float | None:
        if not signals.has_history(entity.analytics):
            return None
        return signals.entity_roi(entity.analytics, entity.asset_count)

    @retry_on_conflict
    async def _update_product_config(self, product_id: str, multiplier: float) -> None:
        document = await self.config.get_or_create(SCALING_CONFIG_KEY)
        products = dict(document.data.get("products") or {})
        current = dict(products.get(product_id) or {})
        current.update(
            {
                "multiplier": multiplier,
                "videosPerWeek": signals.scaled_videos_per_week(current.get("videosPerWeek"), multiplier),
                "priority": "high",
                "autoScale": True,
                "updatedAt": iso_timestamp(),
            }
        )
        products[product_id] = current
        document.data = {**document.data, "products": products}
        await self.config.replace_document(document)
        logger.info("Product %s scaled x%s to %s videos/week", product_id, multiplier, current["videosPerWeek"])
