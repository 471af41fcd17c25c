"""Versioned key -> JSON document store backed by the ``system_config`` table."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql import text

from autopilot.db.session import run_blocking
from autopilot.store.models import ConfigDocument
from autopilot.utils.dates import utc_now

logger = logging.getLogger(__name__)

SCALING_CONFIG_KEY = "system_config"
AB_TESTING_CONFIG_KEY = "ab_testing_config"
PROMPT_VERSIONING_CONFIG_KEY = "prompt_versioning_config"
OPTIMIZER_CONFIG_KEY = "optimizer_config"


class ConfigConflictError(RuntimeError):
    """Raised when a document changed between read and replace."""

    def __init__(self, key: str, expected_version: int) -> None:
        super().__init__(f"Document {key!r} is no longer at version {expected_version}")
        self.key = key
        self.expected_version = expected_version


class ConfigStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def get_document(self, key: str) -> ConfigDocument | None:
        return await run_blocking(self._select, key)

    async def create_document(self, key: str, initial: dict[str, Any] | None = None) -> ConfigDocument:
        return await run_blocking(self._insert, key, initial or {})

    async def replace_document(self, document: ConfigDocument) -> ConfigDocument:
        return await run_blocking(self._update, document)

    async def get_or_create(self, key: str) -> ConfigDocument:
        document = await self.get_document(key)
        if document is None:
            logger.info("Creating config document %s", key)
            document = await self.create_document(key, {})
        return document

    def _select(self, key: str) -> ConfigDocument | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT key, value, version FROM system_config WHERE key = :key"),
                {"key": key},
            ).mappings().first()
        if row is None:
            return None
        return ConfigDocument(key=row["key"], data=_decode(row["value"]), version=int(row["version"]))

    def _insert(self, key: str, initial: dict[str, Any]) -> ConfigDocument:
        now = utc_now().isoformat()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    text(
                        """
                        INSERT INTO system_config (key, value, version, created_at, updated_at)
                        VALUES (:key, :value, 1, :ts, :ts)
                        """
                    ),
                    {"key": key, "value": json.dumps(initial), "ts": now},
                )
        except IntegrityError:
            # Another writer created it first; use theirs.
            existing = self._select(key)
            if existing is None:
                raise
            return existing
        return ConfigDocument(key=key, data=dict(initial), version=1)

    def _update(self, document: ConfigDocument) -> ConfigDocument:
        with self.engine.begin() as conn:
            result = conn.execute(
                text(
                    """
                    UPDATE system_config
                    SET value = :value, version = version + 1, updated_at = :ts
                    WHERE key = :key AND version = :version
                    """
                ),
                {
                    "key": document.key,
                    "value": json.dumps(document.data),
                    "version": document.version,
                    "ts": utc_now().isoformat(),
                },
            )
            if result.rowcount != 1:
                raise ConfigConflictError(document.key, document.version)
        return ConfigDocument(key=document.key, data=document.data, version=document.version + 1)


def _decode(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    data = json.loads(raw)
    return data if isinstance(data, dict) else {}
