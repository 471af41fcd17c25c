"""FastAPI application exposing the optimizer."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.engine import Engine

from autopilot.db.session import create_engine_from_env
from autopilot.logic.ab_testing import ABTestNotFoundError, Metric
from autopilot.logic.cycle import Optimizer

logger = logging.getLogger(__name__)

app = FastAPI(title="Autopilot Optimizer API")


class OptimizeRequest(BaseModel):
    minROI: float | None = None
    killThreshold: float | None = None
    scaleThreshold: float | None = None


class CreateTestRequest(BaseModel):
    name: str
    variantA: dict[str, Any] = Field(default_factory=dict)
    variantB: dict[str, Any] = Field(default_factory=dict)
    metric: Metric


class UsageRequest(BaseModel):
    ctr: float
    conversions: float
    revenue: float


class ObservationRequest(BaseModel):
    variant: str = Field(pattern="^[AB]$")
    value: float


def get_engine() -> Engine:
    return create_engine_from_env()


def get_optimizer(engine: Engine = Depends(get_engine)) -> Optimizer:
    return Optimizer.from_engine(engine)


def jsonable(value: Any) -> Any:
    """Convert engine dataclasses into their persisted camelCase shape."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if hasattr(value, "to_document"):
        return value.to_document()
    if isinstance(value, dict):
        return {key: jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(item) for item in value]
    return value


@app.post("/optimizer/optimize")
async def optimize(payload: OptimizeRequest, optimizer: Optimizer = Depends(get_optimizer)) -> JSONResponse:
    report = await optimizer.run_cycle(
        min_roi=payload.minROI,
        kill_threshold=payload.killThreshold,
        scale_threshold=payload.scaleThreshold,
    )
    return JSONResponse(
        {
            "killed": jsonable(report.killed),
            "scaled": jsonable(report.scaled),
            "abResults": jsonable(report.ab_results),
            "promptResults": jsonable(report.prompt_results),
            "timestamp": report.timestamp,
        }
    )


@app.get("/optimizer/recommendations")
async def recommendations(optimizer: Optimizer = Depends(get_optimizer)) -> JSONResponse:
    report = await optimizer.strategy.rank_products()
    return JSONResponse(jsonable(report))


@app.get("/optimizer/scaling")
async def scaling_recommendations(optimizer: Optimizer = Depends(get_optimizer)) -> JSONResponse:
    return JSONResponse(jsonable(await optimizer.scaler.get_recommendations()))


@app.get("/optimizer/ab-tests")
async def ab_tests(optimizer: Optimizer = Depends(get_optimizer)) -> JSONResponse:
    return JSONResponse(jsonable(await optimizer.ab_testing.get_results()))


@app.post("/optimizer/ab-tests")
async def create_ab_test(payload: CreateTestRequest, optimizer: Optimizer = Depends(get_optimizer)) -> JSONResponse:
    test = await optimizer.ab_testing.create_test(
        name=payload.name,
        variant_a=payload.variantA,
        variant_b=payload.variantB,
        metric=payload.metric,
    )
    return JSONResponse(jsonable(test), status_code=201)


@app.post("/optimizer/ab-tests/common")
async def create_common_tests(optimizer: Optimizer = Depends(get_optimizer)) -> JSONResponse:
    return JSONResponse(jsonable(await optimizer.ab_testing.create_common_tests()), status_code=201)


@app.post("/optimizer/ab-tests/{test_id}/observations")
async def record_observation(
    test_id: str,
    payload: ObservationRequest,
    optimizer: Optimizer = Depends(get_optimizer),
) -> JSONResponse:
    try:
        await optimizer.ab_testing.record_observation(test_id, payload.variant, payload.value)
    except ABTestNotFoundError as exc:
        logger.warning("Observation for unknown test %s", test_id)
        raise HTTPException(status_code=404, detail="Unknown test") from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse({"status": "ok"}, status_code=201)


@app.get("/optimizer/prompts")
async def prompt_performance(optimizer: Optimizer = Depends(get_optimizer)) -> JSONResponse:
    return JSONResponse(jsonable(await optimizer.prompts.get_performance()))


@app.post("/optimizer/prompts/{version_id}/usage")
async def track_prompt_usage(
    version_id: str,
    payload: UsageRequest,
    optimizer: Optimizer = Depends(get_optimizer),
) -> JSONResponse:
    await optimizer.prompts.track_usage(version_id, payload.ctr, payload.conversions, payload.revenue)
    return JSONResponse({"status": "ok"})
