"""Product lifecycle persistence."""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.sql import text

from autopilot.db.session import run_blocking
from autopilot.store.metrics import MetricsReader
from autopilot.store.models import ACTIVE, ARCHIVED, ManagedEntity

logger = logging.getLogger(__name__)

STATUSES = {ACTIVE, ARCHIVED}


class EntityStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def list_active(self) -> list[ManagedEntity]:
        return await run_blocking(self._select_active)

    async def set_status(self, product_id: str, status: str) -> None:
        if status not in STATUSES:
            raise ValueError(f"Unknown product status {status!r}")
        await run_blocking(self._update_status, product_id, status)

    def _select_active(self) -> list[ManagedEntity]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                text("SELECT id, title, status FROM products WHERE status = :status ORDER BY id"),
                {"status": ACTIVE},
            ).mappings().all()
        return [ManagedEntity(id=str(row["id"]), title=row["title"], status=row["status"]) for row in rows]

    def _update_status(self, product_id: str, status: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                text("UPDATE products SET status = :status WHERE id = :id"),
                {"status": status, "id": product_id},
            )
        logger.info("Product %s set to %s", product_id, status)


async def load_active_entities(entities: EntityStore, metrics: MetricsReader) -> list[ManagedEntity]:
    """Active products with their analytics window and video count attached."""
    loaded = await entities.list_active()
    for entity in loaded:
        entity.analytics = await metrics.list_analytics(entity.id)
        entity.asset_count = await metrics.asset_count(entity.id)
    return loaded
