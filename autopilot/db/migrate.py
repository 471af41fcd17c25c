"""Schema migration and verification for the optimizer tables."""

from __future__ import annotations

import logging
import pathlib
import sys
from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from autopilot.db.session import create_engine_from_env

logger = logging.getLogger(__name__)

SCHEMA_PATH = pathlib.Path(__file__).with_name("schema.sql")

REQUIRED_TABLES = {
    "products": {"id", "title", "status"},
    "product_analytics": {"product_id", "date", "revenue", "clicks", "conversions"},
    "videos": {"id", "product_id"},
    "system_config": {"key", "value", "version", "created_at", "updated_at"},
    "ab_observations": {"test_id", "variant", "value", "recorded_at"},
}


class SchemaMismatchError(RuntimeError):
    pass


def run_migrations(engine: Engine) -> None:
    """Apply schema.sql to the database."""
    statements = list(_load_statements(SCHEMA_PATH.read_text()))
    logger.info("Applying %s schema statements", len(statements))
    with engine.begin() as conn:
        for stmt in statements:
            conn.execute(text(stmt))


def verify_schema(engine: Engine) -> None:
    """Fail fast when a table or column the engine queries is missing."""
    inspector = inspect(engine)
    existing = set(inspector.get_table_names())
    problems: list[str] = []
    for table, columns in REQUIRED_TABLES.items():
        if table not in existing:
            problems.append(f"missing table {table}")
            continue
        present = {col["name"] for col in inspector.get_columns(table)}
        for column in sorted(columns - present):
            problems.append(f"missing column {table}.{column}")
    if problems:
        raise SchemaMismatchError("; ".join(problems))


def _load_statements(sql: str) -> Iterable[str]:
    buffer: list[str] = []
    for line in sql.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        buffer.append(line)
        if stripped.endswith(";"):
            yield "\n".join(buffer)
            buffer.clear()
    if buffer:
        yield "\n".join(buffer)


def main() -> None:
    engine = create_engine_from_env()
    try:
        run_migrations(engine)
        verify_schema(engine)
    except SQLAlchemyError as exc:
        print(f"Migration failed: {exc}", file=sys.stderr)
        sys.exit(2)
    except SchemaMismatchError as exc:
        print(f"Schema check failed: {exc}", file=sys.stderr)
        sys.exit(3)


if __name__ == "__main__":
    main()
