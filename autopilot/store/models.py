"""Data models shared by the stores and the optimization engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

ACTIVE = "ACTIVE"
ARCHIVED = "ARCHIVED"


@dataclass(slots=True)
class AnalyticsRecord:
    date: date
    revenue: float
    clicks: int
    conversions: int


@dataclass(slots=True)
class ManagedEntity:
    id: str
    title: str
    status: str = ACTIVE
    analytics: list[AnalyticsRecord] = field(default_factory=list)
    asset_count: int = 0


@dataclass(slots=True)
class ConfigDocument:
    """One JSON document as stored under ``key``.

    ``version`` is the row version read; a replace is only accepted while it
    is still current.
    """

    key: str
    data: dict[str, Any]
    version: int
