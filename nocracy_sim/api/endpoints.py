"""基于 FastAPI 暴露仿真引擎状态与控制接口的路由定义。

读接口返回引擎状态的深拷贝；控制接口（启动、停止、单步、调速、重置）直接
委托给应用持有的 :class:`SimulationEngine` 实例。
"""

from __future__ import annotations

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core.engine import AgentNotFoundError, SimulationEngine, TickInProgressError
from ..core.engine_factory import get_engine
from ..core.history import SnapshotNotFoundError
from ..core.scheduler import MAX_TICK_RATE, MIN_TICK_RATE
from ..data_access.models import (
    Agent,
    HistorySnapshot,
    Law,
    LawStatus,
    SimulationClock,
    TickDelta,
)

router = APIRouter(prefix="/simulation", tags=["simulation"])


def engine_dependency() -> SimulationEngine:
    """路由依赖：返回应用级引擎实例，测试可通过 dependency_overrides 替换。"""
    return get_engine()


class ControlResponse(BaseModel):
    message: str
    clock: SimulationClock


class TickRateRequest(BaseModel):
    """调速请求；超出范围的值会被裁剪而不是拒绝。"""

    rate: float = Field(..., gt=0)


class TickRateResponse(BaseModel):
    requested: float
    applied: float = Field(..., ge=MIN_TICK_RATE, le=MAX_TICK_RATE)


class ResetRequest(BaseModel):
    seed: Optional[int] = None


class TickResponse(BaseModel):
    message: str
    tick: int
    new_agents: int
    removed_agents: int
    new_laws: int
    new_buildings: int
    stability_index: float
    governance_mode: str


class SnapshotSummary(BaseModel):
    id: str
    tick: int
    timestamp: float
    population_total: int
    stability_index: float
    scores: Optional[dict] = None


@router.get("/state", response_model=TickDelta)
async def get_state(engine: SimulationEngine = Depends(engine_dependency)) -> TickDelta:
    """返回完整的当前世界状态。"""
    return engine.get_full_state()


@router.get("/agents/{agent_id}", response_model=Agent)
async def get_agent(
    agent_id: str, engine: SimulationEngine = Depends(engine_dependency)
) -> Agent:
    try:
        return engine.get_agent(agent_id)
    except AgentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0]))


@router.get("/laws", response_model=List[Law])
async def list_laws(
    status_filter: Optional[LawStatus] = Query(default=None, alias="status"),
    engine: SimulationEngine = Depends(engine_dependency),
) -> List[Law]:
    laws = engine.get_laws()
    if status_filter is not None:
        laws = [law for law in laws if law.status == status_filter]
    return laws


@router.get("/snapshots", response_model=List[SnapshotSummary])
async def list_snapshots(
    start_tick: Optional[int] = Query(default=None, ge=0),
    end_tick: Optional[int] = Query(default=None, ge=0),
    engine: SimulationEngine = Depends(engine_dependency),
) -> List[SnapshotSummary]:
    """列出快照摘要（新到旧），可按 tick 闭区间过滤。"""
    if start_tick is None and end_tick is None:
        snapshots = engine.get_snapshots()
    else:
        low = start_tick if start_tick is not None else 0
        high = end_tick if end_tick is not None else engine.clock.tick
        if low > high:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="start_tick must not exceed end_tick",
            )
        snapshots = engine.get_snapshots_by_range(low, high)
    return [
        SnapshotSummary(
            id=s.id,
            tick=s.tick,
            timestamp=s.timestamp,
            population_total=s.population_total,
            stability_index=s.clock.stability_index,
            scores=s.scores,
        )
        for s in snapshots
    ]


@router.get("/snapshots/{snapshot_id}", response_model=HistorySnapshot)
async def get_snapshot(
    snapshot_id: str, engine: SimulationEngine = Depends(engine_dependency)
) -> HistorySnapshot:
    try:
        return engine.get_snapshot(snapshot_id)
    except SnapshotNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0]))


@router.get("/export")
async def export_state(engine: SimulationEngine = Depends(engine_dependency)) -> JSONResponse:
    """导出完整世界状态，附带下载文件名。"""
    document = json.loads(engine.export_snapshot())
    filename = f"nocracy-tick-{document['tick']}.json"
    return JSONResponse(
        content=document,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/start", response_model=ControlResponse)
async def start_simulation(
    engine: SimulationEngine = Depends(engine_dependency),
) -> ControlResponse:
    started = engine.start()
    message = "Simulation started." if started else "Simulation already running."
    return ControlResponse(message=message, clock=engine.clock)


@router.post("/stop", response_model=ControlResponse)
async def stop_simulation(
    engine: SimulationEngine = Depends(engine_dependency),
) -> ControlResponse:
    stopped = await engine.stop()
    message = "Simulation stopped." if stopped else "Simulation was not running."
    return ControlResponse(message=message, clock=engine.clock)


@router.post("/tick", response_model=TickResponse)
async def run_tick(engine: SimulationEngine = Depends(engine_dependency)) -> TickResponse:
    """手动执行单个 tick。"""
    try:
        delta = engine.tick()
    except TickInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return TickResponse(
        message="Tick execution completed.",
        tick=delta.clock.tick,
        new_agents=len(delta.new_agents),
        removed_agents=len(delta.removed_agent_ids),
        new_laws=len(delta.new_laws),
        new_buildings=len(delta.new_buildings),
        stability_index=delta.clock.stability_index,
        governance_mode=delta.clock.governance_mode.value,
    )


@router.post("/rate", response_model=TickRateResponse)
async def set_tick_rate(
    payload: TickRateRequest, engine: SimulationEngine = Depends(engine_dependency)
) -> TickRateResponse:
    applied = engine.set_tick_rate(payload.rate)
    return TickRateResponse(requested=payload.rate, applied=applied)


@router.post("/reset", response_model=ControlResponse)
async def reset_simulation(
    payload: Optional[ResetRequest] = None,
    engine: SimulationEngine = Depends(engine_dependency),
) -> ControlResponse:
    seed = payload.seed if payload is not None else None
    await engine.reset(seed=seed)
    return ControlResponse(message="Simulation reset.", clock=engine.clock)


__all__ = ["engine_dependency", "router"]
