"""Read-only access to per-product analytics and asset counts."""

from __future__ import annotations

import os

from sqlalchemy.engine import Engine
from sqlalchemy.sql import text

from autopilot.db.session import run_blocking
from autopilot.store.models import AnalyticsRecord
from autopilot.utils.dates import as_date

ANALYTICS_WINDOW = int(os.environ.get("ANALYTICS_WINDOW", 30))


class MetricsReader:
    def __init__(self, engine: Engine, *, window: int = ANALYTICS_WINDOW) -> None:
        self.engine = engine
        self.window = window

    async def list_analytics(self, product_id: str) -> list[AnalyticsRecord]:
        return await run_blocking(self._load_analytics, product_id)

    async def asset_count(self, product_id: str) -> int:
        return await run_blocking(self._count_videos, product_id)

    def _load_analytics(self, product_id: str) -> list[AnalyticsRecord]:
        query = text(
            """
            SELECT date, revenue, clicks, conversions
            FROM product_analytics
            WHERE product_id = :product_id
            ORDER BY date DESC
            LIMIT :window
            """
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query, {"product_id": product_id, "window": self.window}).mappings().all()
        return [
            AnalyticsRecord(
                date=as_date(row["date"]),
                revenue=float(row["revenue"] or 0),
                clicks=int(row["clicks"] or 0),
                conversions=int(row["conversions"] or 0),
            )
            for row in rows
        ]

    def _count_videos(self, product_id: str) -> int:
        with self.engine.connect() as conn:
            count = conn.execute(
                text("SELECT COUNT(*) FROM videos WHERE product_id = :product_id"),
                {"product_id": product_id},
            ).scalar_one()
        return int(count)
