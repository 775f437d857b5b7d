"""Pytest configuration helpers for the nocracy simulator project.

Conventions and fixtures
- `patch` : general-purpose alias for pytest's `monkeypatch` fixture. Prefer
    using `patch` in tests instead of naming the parameter `monkeypatch` so the
    intent is clearer and easier to refactor project-wide.
- `config` : a fresh :class:`WorldConfig` built from defaults, safe to mutate.
- `engine` : a deterministic engine with a frozen clock and no collaborators.
- `make_context` : factory that builds a :class:`TickContext` around an engine's
    live world, for exercising a single subsystem in isolation.
"""

from __future__ import annotations

import sys
from pathlib import Path


def _ensure_project_root_on_path() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_path()

from typing import Callable, Optional

import pytest

from nocracy_sim.core.engine import SimulationEngine
from nocracy_sim.core.entity_factory import IdSequence
from nocracy_sim.core.random_source import DeterministicRandom
from nocracy_sim.logic_modules import TickContext
from nocracy_sim.notifications.notifier import NotificationDispatcher
from nocracy_sim.utils.settings import WorldConfig


@pytest.fixture
def config() -> WorldConfig:
    """默认配置的独立副本；测试可以自由修改其中字段。"""
    return WorldConfig()


@pytest.fixture
def engine(config: WorldConfig) -> SimulationEngine:
    """固定种子、固定时钟且不挂接通知器与评分器的引擎。"""
    return SimulationEngine(config, seed=42, clock=lambda: 0.0)


@pytest.fixture
def make_context(engine: SimulationEngine) -> Callable[..., TickContext]:
    """返回一个构造函数，用于围绕 ``engine.world`` 创建单个子系统的上下文。

    用法示例：
        def test_something(make_context):
            ctx = make_context(seed=7)
            process_economy(ctx)
    """

    def _make(
        seed: int = 1,
        *,
        dispatcher: Optional[NotificationDispatcher] = None,
        tick: Optional[int] = None,
    ) -> TickContext:
        if tick is not None:
            engine.world.clock.tick = tick
        return TickContext(
            world=engine.world,
            rng=DeterministicRandom(seed),
            ids=IdSequence(),
            config=engine.config,
            timestamp=0.0,
            dispatcher=dispatcher,
        )

    return _make


@pytest.fixture
def patch(monkeypatch):
    """通用的 `monkeypatch` 别名。

    用法示例：
        def test_something(patch):
            patch.setattr(target_module, "fn", fake_fn)
    """
    return monkeypatch
