import asyncio

import pytest

from nocracy_sim.core.scheduler import (
    MAX_TICK_RATE,
    MIN_TICK_RATE,
    TickScheduler,
    clamp_tick_rate,
)


def test_clamp_tick_rate() -> None:
    assert clamp_tick_rate(0.0) == MIN_TICK_RATE
    assert clamp_tick_rate(100) == MAX_TICK_RATE
    assert clamp_tick_rate(2.5) == 2.5


def test_start_requires_running_loop() -> None:
    scheduler = TickScheduler(lambda: None)
    with pytest.raises(RuntimeError):
        scheduler.start()
    assert not scheduler.running


@pytest.mark.asyncio
# 测试：调度器按频率调用 tick 函数，停止后不再调用。
async def test_scheduler_ticks_at_rate() -> None:
    calls = []
    scheduler = TickScheduler(lambda: calls.append(1), rate=MAX_TICK_RATE)

    assert scheduler.start() is True
    await asyncio.sleep(0.35)
    assert await scheduler.stop() is True

    assert len(calls) >= 2
    seen = len(calls)
    await asyncio.sleep(0.25)
    assert len(calls) == seen


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent() -> None:
    scheduler = TickScheduler(lambda: None, rate=1.0)

    assert scheduler.start() is True
    assert scheduler.start() is False
    assert scheduler.running
    assert await scheduler.stop() is True
    assert await scheduler.stop() is False
    assert not scheduler.running


@pytest.mark.asyncio
# 测试：运行中调高频率会立即以新间隔重新计时，而不必等待旧的长间隔结束。
async def test_rate_change_applies_while_running() -> None:
    calls = []
    scheduler = TickScheduler(lambda: calls.append(1), rate=MIN_TICK_RATE)
    scheduler.start()
    await asyncio.sleep(0.05)
    assert calls == []

    assert scheduler.set_rate(50) == MAX_TICK_RATE
    await asyncio.sleep(0.35)
    await scheduler.stop()

    assert len(calls) >= 2
    assert scheduler.interval == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_failing_tick_does_not_stop_schedule(caplog) -> None:
    calls = []

    def _tick() -> None:
        calls.append(1)
        raise RuntimeError("boom")

    scheduler = TickScheduler(_tick, rate=MAX_TICK_RATE)
    scheduler.start()
    await asyncio.sleep(0.35)
    await scheduler.stop()

    assert len(calls) >= 2
    assert "Scheduled tick failed" in caplog.text
