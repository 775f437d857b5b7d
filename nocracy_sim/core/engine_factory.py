"""应用级引擎实例的创建、获取、重置与释放。

测试与脚本应直接调用 :func:`create_engine` 构造独立实例；Web 应用通过
:func:`get_engine` 共享同一个进程内实例，并在 lifespan 结束时调用
:func:`dispose_engine` 停止调度与在途通知。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..metrics.calculator import BasicScorer, Scorer
from ..notifications.notifier import Notifier, default_notifier
from ..utils.settings import WorldConfig
from .engine import SimulationEngine

logger = logging.getLogger(__name__)

_ENGINE: Optional[SimulationEngine] = None
# 保护 reset/dispose，避免并发请求交错地停止与重建
_FACTORY_LOCK = asyncio.Lock()


def create_engine(
    config: Optional[WorldConfig] = None,
    *,
    seed: Optional[int] = None,
    notifier: Optional[Notifier] = None,
    scorer: Optional[Scorer] = None,
) -> SimulationEngine:
    """构造一个显式的引擎实例，未指定的协作者使用默认实现。"""

    return SimulationEngine(
        config,
        seed=seed,
        notifier=notifier if notifier is not None else default_notifier(),
        scorer=scorer if scorer is not None else BasicScorer(),
    )


def get_engine() -> SimulationEngine:
    """返回应用持有的引擎实例，首次调用时延迟创建。"""

    global _ENGINE
    if _ENGINE is None:
        _ENGINE = create_engine()
        logger.info("Created application engine (seed=%s)", _ENGINE.seed)
    return _ENGINE


def install_engine(engine: SimulationEngine) -> None:
    """注入预先构造的实例（应用启动或测试时使用）。"""

    global _ENGINE
    _ENGINE = engine


async def reset_engine(seed: Optional[int] = None) -> SimulationEngine:
    """停止当前实例并从创世状态重建。"""

    async with _FACTORY_LOCK:
        engine = get_engine()
        await engine.reset(seed=seed)
        return engine


async def dispose_engine() -> None:
    global _ENGINE
    async with _FACTORY_LOCK:
        if _ENGINE is None:
            return
        engine = _ENGINE
        _ENGINE = None
        try:
            await engine.aclose()
        except Exception:  # pragma: no cover - 关闭阶段兜底
            logger.exception("Failed to close application engine")


__all__ = [
    "create_engine",
    "dispose_engine",
    "get_engine",
    "install_engine",
    "reset_engine",
]
