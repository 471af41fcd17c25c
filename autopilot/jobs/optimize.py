"""Optimizer job entry points."""

from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv

from autopilot.db.session import create_engine_from_env
from autopilot.logic.ab_testing import AnalysisSummary
from autopilot.logic.cycle import CycleReport, Optimizer

logger = logging.getLogger(__name__)


def _optimizer() -> Optimizer:
    load_dotenv()
    return Optimizer.from_engine(create_engine_from_env())


async def run_cycle() -> CycleReport:
    report = await _optimizer().run_cycle()
    if report.killed.failed or report.scaled.failed:
        logger.warning(
            "Cycle skipped %s products after errors",
            len(set(report.killed.failed) | set(report.scaled.failed)),
        )
    return report


async def run_ab_analysis() -> AnalysisSummary:
    return await _optimizer().ab_testing.analyze_tests()


async def run_prompt_optimization() -> dict:
    return await _optimizer().prompts.optimize_prompts()


JOBS = {
    "cycle": run_cycle,
    "ab": run_ab_analysis,
    "prompts": run_prompt_optimization,
}


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    name = args[0] if args else "cycle"
    if name not in JOBS:
        print(f"Unknown job {name!r}; expected one of {', '.join(JOBS)}", file=sys.stderr)
        sys.exit(2)
    logging.basicConfig(level=logging.INFO)
    asyncio.run(JOBS[name]())


if __name__ == "__main__":
    main()
