"""Datetime helpers."""

from __future__ import annotations

import os
from datetime import date, datetime

import pendulum

DEFAULT_TZ = "America/Los_Angeles"


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def utc_now() -> pendulum.DateTime:
    return pendulum.now("UTC")


def iso_timestamp() -> str:
    return utc_now().isoformat()


def parse_iso_date(value: str) -> date:
    return pendulum.parse(value).date()


def parse_iso_datetime(value: str) -> datetime:
    return pendulum.parse(value)


def as_date(value: date | datetime | str) -> date:
    """Coerce driver output (sqlite hands back strings) into a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value))
