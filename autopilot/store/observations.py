"""Per-exposure outcomes recorded for A/B test arms."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.engine import Engine
from sqlalchemy.sql import text

from autopilot.db.session import run_blocking
from autopilot.utils.dates import utc_now

VARIANTS = ("A", "B")


@dataclass(slots=True)
class VariantSamples:
    a: list[float] = field(default_factory=list)
    b: list[float] = field(default_factory=list)


class ObservationStore:
    """Default sample source for the A/B engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def load_samples(self, test_id: str) -> VariantSamples:
        return await run_blocking(self._select, test_id)

    async def record(self, test_id: str, variant: str, value: float) -> None:
        if variant not in VARIANTS:
            raise ValueError(f"Unknown variant {variant!r}")
        await run_blocking(self._insert, test_id, variant, float(value))

    def _select(self, test_id: str) -> VariantSamples:
        with self.engine.connect() as conn:
            rows = conn.execute(
                text("SELECT variant, value FROM ab_observations WHERE test_id = :test_id"),
                {"test_id": test_id},
            ).fetchall()
        samples = VariantSamples()
        for variant, value in rows:
            target = samples.a if variant == "A" else samples.b
            target.append(float(value))
        return samples

    def _insert(self, test_id: str, variant: str, value: float) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                text(
                    """
                    INSERT INTO ab_observations (test_id, variant, value, recorded_at)
                    VALUES (:test_id, :variant, :value, :ts)
                    """
                ),
                {"test_id": test_id, "variant": variant, "value": value, "ts": utc_now().isoformat()},
            )
