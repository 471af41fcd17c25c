"""Two-variant experiments over content parameters.

Tests live in the ``abTests`` array of the ``ab_testing_config`` document.
Each analysis round aggregates the observations recorded for both arms,
scores the gap with a z-statistic and completes the test once the winner
clears ``DEPLOY_CONFIDENCE``. Only completed results are persisted; a round
that stays below the bar is reported to the caller and then discarded.
"""

from __future__ import annotations

import logging
import math
import os
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import numpy as np

from autopilot.catalog import load_common_tests
from autopilot.logic.strategy import COMPUTATION_ERRORS
from autopilot.store.config_store import AB_TESTING_CONFIG_KEY, ConfigStore
from autopilot.store.observations import VariantSamples
from autopilot.utils.retry import retry_on_conflict

logger = logging.getLogger(__name__)

DEPLOY_CONFIDENCE = float(os.environ.get("DEPLOY_CONFIDENCE", 95))
MIN_SAMPLES_PER_VARIANT = int(os.environ.get("MIN_SAMPLES_PER_VARIANT", 30))
CONFIDENCE_FLOOR = 50.0
CONFIDENCE_CEILING = 99.0

RUNNING = "running"
COMPLETED = "completed"


class Metric(str, Enum):
    CTR = "ctr"
    CONVERSIONS = "conversions"
    VIEWS = "views"
    ENGAGEMENT = "engagement"

    @property
    def is_rate(self) -> bool:
        return self in (Metric.CTR, Metric.CONVERSIONS)


class ABTestNotFoundError(LookupError):
    pass


class VariantSampleSource(Protocol):
    async def load_samples(self, test_id: str) -> VariantSamples: ...

    async def record(self, test_id: str, variant: str, value: float) -> None: ...


@dataclass(slots=True)
class VariantComparison:
    variant_a_value: float
    variant_b_value: float
    winner: str
    confidence: float
    recommendation: str

    def to_document(self) -> dict[str, Any]:
        return {
            "variantAValue": self.variant_a_value,
            "variantBValue": self.variant_b_value,
            "winner": self.winner,
            "confidence": self.confidence,
            "recommendation": self.recommendation,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> VariantComparison:
        return cls(
            variant_a_value=float(data.get("variantAValue", 0.0)),
            variant_b_value=float(data.get("variantBValue", 0.0)),
            winner=data.get("winner", "B"),
            confidence=float(data.get("confidence", CONFIDENCE_FLOOR)),
            recommendation=data.get("recommendation", ""),
        )


@dataclass(slots=True)
class ABTest:
    id: str
    name: str
    variant_a: dict[str, Any]
    variant_b: dict[str, Any]
    metric: Metric
    status: str = RUNNING
    results: VariantComparison | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "variantA": self.variant_a,
            "variantB": self.variant_b,
            "metric": self.metric.value,
            "status": self.status,
        }
        if self.results is not None:
            doc["results"] = self.results.to_document()
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> ABTest:
        results = data.get("results")
        return cls(
            id=data["id"],
            name=data["name"],
            variant_a=data.get("variantA") or {},
            variant_b=data.get("variantB") or {},
            metric=Metric(data["metric"]),
            status=data.get("status", RUNNING),
            results=VariantComparison.from_document(results) if results else None,
        )


@dataclass(slots=True)
class RoundResult:
    test_id: str
    test_name: str
    result: VariantComparison

    def to_dict(self) -> dict[str, Any]:
        return {"testId": self.test_id, "testName": self.test_name, **self.result.to_document()}


@dataclass(slots=True)
class AnalysisSummary:
    analyzed: int = 0
    completed: int = 0
    results: list[RoundResult] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "analyzed": self.analyzed,
            "completed": self.completed,
            "results": [r.to_dict() for r in self.results],
            "failed": list(self.failed),
        }


def z_statistic(metric: Metric, a: np.ndarray, b: np.ndarray) -> float:
    """Pooled two-proportion z for rate metrics, Welch z for the rest."""
    if metric.is_rate:
        # Rate samples are 0/1 outcomes; keep the pooled rate a probability.
        pooled = min(1.0, max(0.0, (a.sum() + b.sum()) / (a.size + b.size)))
        se = math.sqrt(pooled * (1 - pooled) * (1 / a.size + 1 / b.size))
    else:
        se = math.sqrt(a.var(ddof=1) / a.size + b.var(ddof=1) / b.size)
    if se == 0 or math.isnan(se):
        return 0.0
    return float((a.mean() - b.mean()) / se)


def confidence_from_z(z: float) -> float:
    """Probability, in percent, that the observed leader is the better arm."""
    prob = 0.5 * (1 + math.erf(abs(z) / math.sqrt(2)))
    return min(CONFIDENCE_CEILING, max(CONFIDENCE_FLOOR, prob * 100))


def compare_variants(
    metric: Metric,
    samples: VariantSamples,
    *,
    min_samples: int = MIN_SAMPLES_PER_VARIANT,
    deploy_confidence: float = DEPLOY_CONFIDENCE,
) -> VariantComparison:
    a = np.asarray(samples.a, dtype=float)
    b = np.asarray(samples.b, dtype=float)
    value_a = float(a.mean()) if a.size else 0.0
    value_b = float(b.mean()) if b.size else 0.0
    winner = "A" if value_a > value_b else "B"
    if a.size < max(min_samples, 2) or b.size < max(min_samples, 2):
        confidence = CONFIDENCE_FLOOR
    else:
        confidence = confidence_from_z(z_statistic(metric, a, b))
    confidence = round(confidence, 2)
    if confidence > deploy_confidence:
        recommendation = f"Deploy variant {winner}"
    else:
        recommendation = f"Continue testing: confidence at {confidence:.1f}%"
    return VariantComparison(
        variant_a_value=value_a,
        variant_b_value=value_b,
        winner=winner,
        confidence=confidence,
        recommendation=recommendation,
    )


class ABTestingEngine:
    def __init__(self, config: ConfigStore, samples: VariantSampleSource) -> None:
        self.config = config
        self.samples = samples

    @retry_on_conflict
    async def create_test(
        self,
        name: str,
        variant_a: dict[str, Any],
        variant_b: dict[str, Any],
        metric: Metric | str,
    ) -> ABTest:
        logger.info("Creating A/B test %s", name)
        test = ABTest(
            id=f"test_{uuid.uuid4().hex}",
            name=name,
            variant_a=dict(variant_a),
            variant_b=dict(variant_b),
            metric=Metric(metric),
        )
        document = await self.config.get_or_create(AB_TESTING_CONFIG_KEY)
        tests = list(document.data.get("abTests") or [])
        tests.append(test.to_document())
        document.data = {**document.data, "abTests": tests}
        await self.config.replace_document(document)
        return test

    @retry_on_conflict
    async def analyze_tests(self) -> AnalysisSummary:
        logger.info("Analyzing A/B tests")
        document = await self.config.get_or_create(AB_TESTING_CONFIG_KEY)
        raw_tests = list(document.data.get("abTests") or [])
        summary = AnalysisSummary()
        changed = False

        for index, raw in enumerate(raw_tests):
            if raw.get("status", RUNNING) != RUNNING:
                continue
            try:
                test = ABTest.from_document(raw)
                samples = await self.samples.load_samples(test.id)
                result = compare_variants(test.metric, samples)
            except COMPUTATION_ERRORS:
                logger.exception("Could not analyze A/B test %s", raw.get("id"))
                summary.failed.append(str(raw.get("id")))
                continue
            summary.analyzed += 1
            summary.results.append(RoundResult(test_id=test.id, test_name=test.name, result=result))
            if result.confidence > DEPLOY_CONFIDENCE:
                test.status = COMPLETED
                test.results = result
                raw_tests[index] = {**raw, **test.to_document()}
                summary.completed += 1
                changed = True
                logger.info("A/B test %s completed, winner %s", test.id, result.winner)

        if changed:
            document.data = {**document.data, "abTests": raw_tests}
            await self.config.replace_document(document)
        logger.info("Analyzed %s A/B tests, %s completed", summary.analyzed, summary.completed)
        return summary

    async def get_results(self) -> dict[str, Any]:
        tests = await self.list_tests()
        return {
            "total": len(tests),
            "running": sum(1 for t in tests if t.status == RUNNING),
            "completed": sum(1 for t in tests if t.status == COMPLETED),
            "tests": [
                {
                    "id": t.id,
                    "name": t.name,
                    "metric": t.metric.value,
                    "status": t.status,
                    "results": t.results.to_document() if t.results else None,
                }
                for t in tests
            ],
        }

    async def create_common_tests(self) -> dict[str, Any]:
        created: list[ABTest] = []
        for entry in load_common_tests():
            created.append(
                await self.create_test(
                    name=entry["name"],
                    variant_a=entry["variantA"],
                    variant_b=entry["variantB"],
                    metric=entry["metric"],
                )
            )
        return {"created": len(created), "tests": created}

    async def list_tests(self) -> list[ABTest]:
        document = await self.config.get_document(AB_TESTING_CONFIG_KEY)
        if document is None:
            return []
        tests: list[ABTest] = []
        for raw in document.data.get("abTests") or []:
            try:
                tests.append(ABTest.from_document(raw))
            except COMPUTATION_ERRORS:
                logger.warning("Skipping malformed A/B test entry %s", raw.get("id") if isinstance(raw, dict) else raw)
        return tests

    async def record_observation(self, test_id: str, variant: str, value: float) -> None:
        test = next((t for t in await self.list_tests() if t.id == test_id), None)
        if test is None:
            raise ABTestNotFoundError(test_id)
        if test.metric.is_rate and value not in (0, 1):
            raise ValueError(f"{test.metric.value} observations must be 0 or 1, got {value!r}")
        await self.samples.record(test_id, variant, value)
