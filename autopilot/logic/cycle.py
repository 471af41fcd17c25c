"""One full optimization pass over the product portfolio."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from sqlalchemy.engine import Engine

from autopilot.logic.ab_testing import ABTestingEngine, AnalysisSummary
from autopilot.logic.prompts import PromptVersioningEngine
from autopilot.logic.scaling import AutoScaler, ScaleSummary
from autopilot.logic.strategy import KillSummary, StrategyOptimizer
from autopilot.store.config_store import OPTIMIZER_CONFIG_KEY, ConfigStore
from autopilot.store.entities import EntityStore
from autopilot.store.metrics import MetricsReader
from autopilot.store.observations import ObservationStore
from autopilot.utils.dates import iso_timestamp
from autopilot.utils.retry import retry_on_conflict

logger = logging.getLogger(__name__)

MIN_ROI = float(os.environ.get("MIN_ROI", 1.5))
KILL_THRESHOLD = float(os.environ.get("KILL_THRESHOLD", 0.5))
SCALE_THRESHOLD = float(os.environ.get("SCALE_THRESHOLD", 2.0))


@dataclass(slots=True)
class CycleReport:
    killed: KillSummary
    scaled: ScaleSummary
    ab_results: AnalysisSummary
    prompt_results: dict[str, Any]
    timestamp: str


@dataclass(slots=True)
class Optimizer:
    strategy: StrategyOptimizer
    scaler: AutoScaler
    ab_testing: ABTestingEngine
    prompts: PromptVersioningEngine
    config: ConfigStore

    @classmethod
    def from_engine(cls, engine: Engine) -> Optimizer:
        entities = EntityStore(engine)
        metrics = MetricsReader(engine)
        config = ConfigStore(engine)
        return cls(
            strategy=StrategyOptimizer(entities, metrics),
            scaler=AutoScaler(entities, metrics, config),
            ab_testing=ABTestingEngine(config, ObservationStore(engine)),
            prompts=PromptVersioningEngine(config),
            config=config,
        )

    async def run_cycle(
        self,
        *,
        min_roi: float | None = None,
        kill_threshold: float | None = None,
        scale_threshold: float | None = None,
    ) -> CycleReport:
        min_roi = MIN_ROI if min_roi is None else min_roi
        kill_threshold = KILL_THRESHOLD if kill_threshold is None else kill_threshold
        scale_threshold = SCALE_THRESHOLD if scale_threshold is None else scale_threshold
        logger.info("Starting optimization cycle")

        # Kill before scale: the two passes must not race on the same product.
        killed = await self.strategy.kill_low_performers(kill_threshold)
        scaled = await self.scaler.scale_winners(scale_threshold)
        ab_results = await self.ab_testing.analyze_tests()
        prompt_results = await self.prompts.optimize_prompts()

        timestamp = iso_timestamp()
        await self._record_settings(
            {
                "minROI": min_roi,
                "killThreshold": kill_threshold,
                "scaleThreshold": scale_threshold,
                "lastOptimized": timestamp,
            }
        )
        logger.info("Optimization cycle complete: %s killed, %s scaled", killed.killed, scaled.scaled)
        return CycleReport(
            killed=killed,
            scaled=scaled,
            ab_results=ab_results,
            prompt_results=prompt_results,
            timestamp=timestamp,
        )

    @retry_on_conflict
    async def _record_settings(self, settings: dict[str, Any]) -> None:
        document = await self.config.get_or_create(OPTIMIZER_CONFIG_KEY)
        document.data = {**document.data, **settings}
        await self.config.replace_document(document)
