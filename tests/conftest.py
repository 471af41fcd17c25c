from datetime import date, timedelta

import pytest
from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, MetaData, String, Table, Text, create_engine
from sqlalchemy.pool import StaticPool

from autopilot.store.config_store import ConfigStore
from autopilot.store.entities import EntityStore
from autopilot.store.metrics import MetricsReader
from autopilot.store.observations import ObservationStore

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Text, primary_key=True),
    Column("title", Text, nullable=False),
    Column("status", Text, nullable=False, default="ACTIVE"),
)

product_analytics = Table(
    "product_analytics",
    metadata,
    Column("product_id", Text, ForeignKey("products.id"), primary_key=True),
    Column("date", Date, primary_key=True),
    Column("revenue", Float, nullable=False),
    Column("clicks", Integer, nullable=False),
    Column("conversions", Integer, nullable=False),
)

videos = Table(
    "videos",
    metadata,
    Column("id", Text, primary_key=True),
    Column("product_id", Text, ForeignKey("products.id")),
)

system_config = Table(
    "system_config",
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", Text, nullable=False),
    Column("version", Integer, nullable=False),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
)

ab_observations = Table(
    "ab_observations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("test_id", Text, nullable=False),
    Column("variant", String(1), nullable=False),
    Column("value", Float, nullable=False),
    Column("recorded_at", DateTime),
)


@pytest.fixture()
def engine():
    # One shared connection so executor threads see the same in-memory database.
    engine = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def config_store(engine):
    return ConfigStore(engine)


@pytest.fixture()
def entity_store(engine):
    return EntityStore(engine)


@pytest.fixture()
def metrics_reader(engine):
    return MetricsReader(engine)


@pytest.fixture()
def observation_store(engine):
    return ObservationStore(engine)


@pytest.fixture()
def add_product(engine):
    """Insert a product whose ``revenues`` run newest first, one per day."""

    def _add(product_id, title, revenues, videos_count=0, status="ACTIVE", conversions=1):
        today = date.today()
        with engine.begin() as conn:
            conn.execute(products.insert(), {"id": product_id, "title": title, "status": status})
            if revenues:
                conn.execute(
                    product_analytics.insert(),
                    [
                        {
                            "product_id": product_id,
                            "date": today - timedelta(days=offset),
                            "revenue": revenue,
                            "clicks": 10,
                            "conversions": conversions,
                        }
                        for offset, revenue in enumerate(revenues)
                    ],
                )
            if videos_count:
                conn.execute(
                    videos.insert(),
                    [{"id": f"{product_id}-v{i}", "product_id": product_id} for i in range(videos_count)],
                )
        return product_id

    return _add


@pytest.fixture()
def product_status(engine):
    def _status(product_id):
        with engine.connect() as conn:
            return conn.execute(products.select().where(products.c.id == product_id)).mappings().one()["status"]

    return _status
