"""Product lifecycle classification: kill, scale, optimize or maintain."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from autopilot.logic.costs import cost_of_assets
from autopilot.logic import signals
from autopilot.logic.ranking import rank_recommendations
from autopilot.store.entities import EntityStore, load_active_entities
from autopilot.store.metrics import MetricsReader
from autopilot.store.models import ARCHIVED, ManagedEntity

logger = logging.getLogger(__name__)

KILL = "kill"
SCALE = "scale"
OPTIMIZE = "optimize"
MAINTAIN = "maintain"

PRIORITIES = {KILL: 10, SCALE: 9, OPTIMIZE: 7, MAINTAIN: 3}

KILL_ROI = 0.5
SCALE_ROI = 2.0
OPTIMIZE_ROI = 1.0

COMPUTATION_ERRORS = (ValueError, TypeError, KeyError, AttributeError, ArithmeticError)


@dataclass(slots=True)
class Recommendation:
    product_id: str
    product_title: str
    action: str
    reason: str
    priority: int
    roi: float
    revenue: float
    conversions: int
    trend: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "productTitle": self.product_title,
            "action": self.action,
            "reason": self.reason,
            "priority": self.priority,
            "metrics": {
                "roi": self.roi,
                "revenue": self.revenue,
                "conversions": self.conversions,
                "trend": self.trend,
            },
        }


@dataclass(slots=True)
class KillSummary:
    killed: int = 0
    products: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"killed": self.killed, "products": list(self.products), "failed": list(self.failed)}


@dataclass(slots=True)
class PortfolioReport:
    recommendations: list[Recommendation]
    total_products: int
    action_required: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "recommendations": [r.to_dict() for r in self.recommendations],
            "totalProducts": self.total_products,
            "actionRequired": self.action_required,
        }


def analyze_product(entity: ManagedEntity) -> Recommendation | None:
    records = signals.newest_first(entity.analytics)
    if not signals.has_history(records, 2):
        return None

    revenue = signals.total_revenue(records)
    value = signals.roi(revenue, cost_of_assets(entity.asset_count))
    trend = signals.revenue_trend(records)

    if value < KILL_ROI:
        action = KILL
        reason = f"ROI {value:.2f} below threshold {KILL_ROI} over {len(records)} days"
    elif value > SCALE_ROI and trend == signals.UP:
        action = SCALE
        reason = f"High ROI {value:.2f} with upward trend"
    elif value < OPTIMIZE_ROI and trend == signals.DOWN:
        action = OPTIMIZE
        reason = f"Low ROI {value:.2f} with downward trend"
    else:
        action = MAINTAIN
        reason = f"Stable performance, ROI {value:.2f}"

    return Recommendation(
        product_id=entity.id,
        product_title=entity.title,
        action=action,
        reason=reason,
        priority=PRIORITIES[action],
        roi=value,
        revenue=revenue,
        conversions=signals.total_conversions(records),
        trend=trend,
    )


class StrategyOptimizer:
    def __init__(self, entities: EntityStore, metrics: MetricsReader) -> None:
        self.entities = entities
        self.metrics = metrics

    async def kill_low_performers(self, threshold: float) -> KillSummary:
        logger.info("Killing products with ROI < %s", threshold)
        summary = KillSummary()
        for entity in await load_active_entities(self.entities, self.metrics):
            try:
                doomed = self._should_kill(entity, threshold)
            except COMPUTATION_ERRORS:
                logger.exception("Could not evaluate product %s", entity.id)
                summary.failed.append(entity.id)
                continue
            if not doomed:
                continue
            await self.entities.set_status(entity.id, ARCHIVED)
            summary.products.append(entity.title)
        summary.killed = len(summary.products)
        logger.info("Killed %s low performers", summary.killed)
        return summary

    async def rank_products(self) -> PortfolioReport:
        entities = await load_active_entities(self.entities, self.metrics)
        recommendations: list[Recommendation] = []
        for entity in entities:
            try:
                rec = analyze_product(entity)
            except COMPUTATION_ERRORS:
                logger.exception("Could not analyze product %s", entity.id)
                continue
            if rec:
                recommendations.append(rec)
        ranked = rank_recommendations(recommendations)
        return PortfolioReport(
            recommendations=ranked,
            total_products=len(entities),
            action_required=sum(1 for r in ranked if r.action != MAINTAIN),
        )

    def _should_kill(self, entity: ManagedEntity, threshold: float) -> bool:
        if not signals.has_history(entity.analytics):
            return False
        # No videos means no spend yet, so ROI says nothing about the product.
        if entity.asset_count <= 0:
            return False
        return signals.entity_roi(entity.analytics, entity.asset_count) < threshold
