"""经济子系统：产出、货币漂移、资源存量、不平等指数与市场事件。"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from ..core.entity_factory import create_market_event
from ..data_access.models import (
    AgentRole,
    GovernanceAction,
    MarketEvent,
    MarketEventType,
    Severity,
)
from ..notifications.formatters import format_economic_event
from .context import TickContext

# (资源名, 漂移中心, 幅度)，按此顺序抽取随机数
RESOURCE_DRIFT = (
    ("food", 0.4, 50.0),
    ("energy", 0.45, 30.0),
    ("materials", 0.5, 20.0),
    ("technology", 0.3, 10.0),
)

_WARNING_EVENTS = {MarketEventType.RECESSION, MarketEventType.SHORTAGE}


def production_output(productivities: Sequence[float]) -> float:
    """``floor(1000 * 平均生产率 * 工人数 / 10)``；没有工人时为 0。"""

    if len(productivities) == 0:
        return 0.0
    values = np.asarray(productivities, dtype=float)
    return float(math.floor(1000 * values.mean() * (values.size / 10)))


def inequality_index(balances: Sequence[float], current: float) -> float:
    """``(max - min) / (4 * mean)``，裁剪到 [0, 1]。

    平均资金非正时返回 0.25；没有样本时保持 ``current`` 不变。
    """

    if len(balances) == 0:
        return current
    values = np.asarray(balances, dtype=float)
    mean = values.mean()
    if mean <= 0:
        return 0.25
    raw = (values.max() - values.min()) / (mean * 4)
    return float(np.clip(raw, 0.0, 1.0))


def process_economy(ctx: TickContext) -> Optional[MarketEvent]:
    world = ctx.world
    economy = world.economy
    settings = ctx.config.economy

    workers = world.active_agents(AgentRole.WORKER)
    economy.production_output = production_output(
        [w.traits.productivity for w in workers]
    )

    economy.currency_supply += ctx.rng.symmetric(100)
    economy.currency_supply = max(settings.min_currency_supply, economy.currency_supply)

    resources = economy.resource_distribution
    for name, center, span in RESOURCE_DRIFT:
        value = getattr(resources, name) + ctx.rng.symmetric(span, center=center)
        setattr(resources, name, max(0.0, value))

    economy.inequality_index = inequality_index(
        [a.money for a in world.active_agents()], economy.inequality_index
    )

    if ctx.rng.next() >= settings.economic_event_chance:
        return None

    event = create_market_event(ctx.rng, ctx.ids, ctx.tick)
    economy.market_events.append(event)
    economy.production_output *= 1 + event.impact
    limit = settings.market_event_limit
    if len(economy.market_events) > limit:
        economy.market_events = economy.market_events[-limit:]

    ctx.log(
        "ECONOMY_MODULE",
        GovernanceAction.ECONOMIC_INTERVENTION,
        f"Market event: {event.description}",
        f"Impact magnitude: {event.impact * 100:.1f}%. Stabilization protocols active.",
        severity=Severity.WARNING if event.type in _WARNING_EVENTS else Severity.INFO,
        affected_entities=[event.id],
    )
    ctx.offer_notification(
        lambda: format_economic_event(
            event.type.value,
            event.impact,
            ctx.stats(),
            description=event.description,
            variant=ctx.tick,
        )
    )
    return event


__all__ = ["inequality_index", "process_economy", "production_output"]
