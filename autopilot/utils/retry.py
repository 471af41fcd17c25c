"""Retry helpers for optimistic read-modify-write cycles."""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from collections.abc import Awaitable, Callable

from autopilot.store.config_store import ConfigConflictError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


def retry_on_conflict(func: Callable[..., Awaitable]):
    """Re-run a whole read-modify-write when another writer got there first."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        delay = 0.05
        for attempt in range(MAX_ATTEMPTS):
            try:
                return await func(*args, **kwargs)
            except ConfigConflictError as exc:
                if attempt == MAX_ATTEMPTS - 1:
                    raise
                logger.warning("Retrying %s after conflict on %s", func.__name__, exc.key)
                await asyncio.sleep(delay + random.random() * delay)
                delay *= 2
    return wrapper
