"""Prompt template versions and their rolling performance."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from autopilot.catalog import load_seed_prompts
from autopilot.logic.signals import rolling_mean
from autopilot.store.config_store import PROMPT_VERSIONING_CONFIG_KEY, ConfigStore
from autopilot.utils.dates import iso_timestamp, parse_iso_datetime
from autopilot.utils.retry import retry_on_conflict

logger = logging.getLogger(__name__)

VARIANT_SUFFIX = "-variant"


@dataclass(slots=True)
class Performance:
    uses: int = 0
    avg_ctr: float = 0.0
    avg_conversions: float = 0.0
    avg_revenue: float = 0.0

    def record(self, ctr: float, conversions: float, revenue: float) -> None:
        self.avg_ctr = rolling_mean(self.avg_ctr, self.uses, ctr)
        self.avg_conversions = rolling_mean(self.avg_conversions, self.uses, conversions)
        self.avg_revenue = rolling_mean(self.avg_revenue, self.uses, revenue)
        self.uses += 1


@dataclass(slots=True)
class PromptVersion:
    id: str
    version: int
    template: str
    parameters: dict[str, Any]
    performance: Performance = field(default_factory=Performance)
    created_at: str = field(default_factory=iso_timestamp)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "template": self.template,
            "parameters": self.parameters,
            "performance": {
                "uses": self.performance.uses,
                "avgCTR": self.performance.avg_ctr,
                "avgConversions": self.performance.avg_conversions,
                "avgRevenue": self.performance.avg_revenue,
            },
            "createdAt": self.created_at,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> PromptVersion:
        perf = data.get("performance") or {}
        return cls(
            id=data["id"],
            version=int(data["version"]),
            template=data.get("template", ""),
            parameters=dict(data.get("parameters") or {}),
            performance=Performance(
                uses=int(perf.get("uses", 0)),
                avg_ctr=float(perf.get("avgCTR", 0.0)),
                avg_conversions=float(perf.get("avgConversions", 0.0)),
                avg_revenue=float(perf.get("avgRevenue", 0.0)),
            ),
            created_at=data.get("createdAt") or iso_timestamp(),
        )


def best_version(versions: Sequence[PromptVersion]) -> PromptVersion:
    """Highest average revenue; the earlier version wins a tie."""
    best = versions[0]
    for candidate in versions[1:]:
        if candidate.performance.avg_revenue > best.performance.avg_revenue:
            best = candidate
    return best


def chronological(versions: Sequence[PromptVersion]) -> list[PromptVersion]:
    return sorted(versions, key=lambda v: (parse_iso_datetime(v.created_at), v.version))


def revenue_improvement(versions: Sequence[PromptVersion]) -> float:
    """Percent change in average revenue from the first version to the latest."""
    if len(versions) < 2:
        return 0.0
    ordered = chronological(versions)
    first = ordered[0].performance.avg_revenue or 1.0
    last = ordered[-1].performance.avg_revenue
    return (last - first) / first * 100


def derive_variant(best: PromptVersion, next_version: int) -> PromptVersion:
    return PromptVersion(
        id=f"v{next_version}",
        version=next_version,
        template=f"{best.template}{VARIANT_SUFFIX}",
        parameters={**best.parameters, "optimized": True, "basedOn": best.version},
    )


class PromptVersioningEngine:
    def __init__(self, config: ConfigStore) -> None:
        self.config = config

    async def get_prompt_versions(self) -> list[PromptVersion]:
        document = await self.config.get_or_create(PROMPT_VERSIONING_CONFIG_KEY)
        return [PromptVersion.from_document(raw) for raw in document.data.get("promptVersions") or []]

    @retry_on_conflict
    async def optimize_prompts(self) -> dict[str, Any]:
        logger.info("Optimizing prompt versions")
        document = await self.config.get_or_create(PROMPT_VERSIONING_CONFIG_KEY)
        versions = [PromptVersion.from_document(raw) for raw in document.data.get("promptVersions") or []]

        if not versions:
            seeds = [
                PromptVersion(id=f"v{number}", version=number, template=seed["template"], parameters=dict(seed["parameters"]))
                for number, seed in enumerate(load_seed_prompts(), start=1)
            ]
            document.data = {**document.data, "promptVersions": [v.to_document() for v in seeds]}
            await self.config.replace_document(document)
            logger.info("Seeded %s prompt versions", len(seeds))
            return {"created": len(seeds), "versions": seeds}

        best = best_version(versions)
        improvement = revenue_improvement(versions)
        new_version = derive_variant(best, max(v.version for v in versions) + 1)
        raw_versions = list(document.data.get("promptVersions") or [])
        raw_versions.append(new_version.to_document())
        document.data = {**document.data, "promptVersions": raw_versions}
        await self.config.replace_document(document)
        logger.info("Created prompt version %s from version %s", new_version.version, best.version)
        return {
            "bestVersion": best.version,
            "newVersion": new_version.version,
            "improvement": improvement,
        }

    @retry_on_conflict
    async def track_usage(self, version_id: str, ctr: float, conversions: float, revenue: float) -> None:
        document = await self.config.get_or_create(PROMPT_VERSIONING_CONFIG_KEY)
        raw_versions = list(document.data.get("promptVersions") or [])
        for index, raw in enumerate(raw_versions):
            if raw.get("id") != version_id:
                continue
            version = PromptVersion.from_document(raw)
            version.performance.record(ctr, conversions, revenue)
            raw_versions[index] = {**raw, **version.to_document()}
            document.data = {**document.data, "promptVersions": raw_versions}
            await self.config.replace_document(document)
            return
        logger.warning("Prompt version %s not found, usage ignored", version_id)

    async def get_performance(self) -> dict[str, Any]:
        versions = sorted(
            await self.get_prompt_versions(),
            key=lambda v: v.performance.avg_revenue,
            reverse=True,
        )
        return {
            "total": len(versions),
            "best": versions[0] if versions else None,
            "worst": versions[-1] if versions else None,
            "versions": versions,
        }
