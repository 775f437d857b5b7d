"""基于 asyncio 的挂钟调度器，按 tick 频率驱动引擎。

调度循环在两个 tick 之间等待 ``1 / tick_rate_hz`` 秒。修改频率会唤醒正在等待的
循环，使其以新的间隔重新开始等待；唤醒本身不会触发额外的 tick。tick 本身是
同步执行的，因此停止调度不会打断进行中的 tick。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MIN_TICK_RATE = 0.1
MAX_TICK_RATE = 10.0


def clamp_tick_rate(rate: float) -> float:
    return max(MIN_TICK_RATE, min(MAX_TICK_RATE, float(rate)))


class TickScheduler:
    """周期性调用 ``tick_fn`` 的后台任务。"""

    def __init__(self, tick_fn: Callable[[], object], rate: float = 1.0) -> None:
        self._tick_fn = tick_fn
        self._rate = clamp_tick_rate(rate)
        self._task: Optional[asyncio.Task] = None
        self._rate_changed: Optional[asyncio.Event] = None

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def interval(self) -> float:
        return 1.0 / self._rate

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """启动调度；已在运行时返回 ``False``。需要正在运行的事件循环。"""
        if self.running:
            return False
        loop = asyncio.get_running_loop()
        self._rate_changed = asyncio.Event()
        self._task = loop.create_task(self._run())
        logger.info("Tick scheduler started at %.2f Hz", self._rate)
        return True

    async def stop(self) -> bool:
        """取消调度任务并等待其退出；未运行时返回 ``False``。"""
        task = self._task
        self._task = None
        if task is None:
            return False
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Tick scheduler stopped")
        return True

    def set_rate(self, rate: float) -> float:
        self._rate = clamp_tick_rate(rate)
        if self._rate_changed is not None:
            self._rate_changed.set()
        return self._rate

    async def _wait_interval(self) -> None:
        assert self._rate_changed is not None
        while True:
            self._rate_changed.clear()
            try:
                await asyncio.wait_for(self._rate_changed.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                return
            logger.debug("Tick interval restarted at %.2f Hz", self._rate)

    async def _run(self) -> None:
        while True:
            await self._wait_interval()
            try:
                self._tick_fn()
            except Exception:
                logger.exception("Scheduled tick failed")


__all__ = ["MAX_TICK_RATE", "MIN_TICK_RATE", "TickScheduler", "clamp_tick_rate"]
