"""Celery configuration for scheduled optimizer runs."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from autopilot.utils.dates import timezone_name

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

CYCLE_HOUR = int(os.environ.get("CYCLE_HOUR", "3"))
CYCLE_MINUTE = int(os.environ.get("CYCLE_MINUTE", "0"))

celery_app = Celery("autopilot", broker=broker_url, backend=backend_url, include=["autopilot.jobs.optimize"])
celery_app.conf.timezone = timezone_name()
celery_app.conf.beat_schedule = {
    "optimization-cycle": {
        "task": "autopilot.jobs.optimize.run_cycle",
        "schedule": crontab(hour=CYCLE_HOUR, minute=CYCLE_MINUTE),
    },
    "ab-test-analysis": {
        "task": "autopilot.jobs.optimize.run_ab_analysis",
        "schedule": crontab(minute=CYCLE_MINUTE, hour="*/6"),
    },
    "prompt-optimization": {
        "task": "autopilot.jobs.optimize.run_prompt_optimization",
        "schedule": crontab(day_of_week="mon", hour=CYCLE_HOUR, minute=(CYCLE_MINUTE + 30) % 60),
    },
}


@celery_app.task(name="autopilot.jobs.optimize.run_cycle")
def run_cycle_task():  # pragma: no cover - executed by worker
    import asyncio

    from autopilot.jobs.optimize import run_cycle

    asyncio.run(run_cycle())


@celery_app.task(name="autopilot.jobs.optimize.run_ab_analysis")
def run_ab_analysis_task():  # pragma: no cover - executed by worker
    import asyncio

    from autopilot.jobs.optimize import run_ab_analysis

    asyncio.run(run_ab_analysis())


@celery_app.task(name="autopilot.jobs.optimize.run_prompt_optimization")
def run_prompt_optimization_task():  # pragma: no cover - executed by worker
    import asyncio

    from autopilot.jobs.optimize import run_prompt_optimization

    asyncio.run(run_prompt_optimization())
