"""代理人生命周期：移动、出生、死亡、衰老与工资发放。

移动按代理人顺序依次更新：后处理的代理人看到的是先前代理人已移动后的位置。
出生时的拥挤检测使用本 tick 出生前的活跃代理人列表。
"""

from __future__ import annotations

import logging
import math
from typing import List, Tuple

import numpy as np

from ..core.entity_factory import create_agent
from ..data_access.models import (
    Agent,
    AgentActivity,
    AgentStatus,
    GovernanceAction,
    Position,
)
from ..notifications.formatters import format_population_growth
from .context import TickContext

logger = logging.getLogger(__name__)

NEIGHBOUR_RADIUS = 50.0
SPAWN_CROWD_RADIUS = 30.0
SPAWN_CROWD_LIMIT = 3
SPAWN_RING_ATTEMPTS = 5
SPAWN_MAX_ATTEMPTS = 10


def process_movement(ctx: TickContext) -> None:
    """随机游走叠加近邻排斥力，并裁剪到地图范围。"""

    active = ctx.world.active_agents()
    if not active:
        return

    map_limit = ctx.config.simulation.map_size - 1
    radius = ctx.config.population.movement_radius
    strength = ctx.config.population.repulsion_strength
    positions = np.array([[a.position.x, a.position.y] for a in active], dtype=float)

    for idx, agent in enumerate(active):
        separation = positions[idx] - positions
        distance = np.hypot(separation[:, 0], separation[:, 1])
        mask = (distance > 0) & (distance < radius)
        mask[idx] = False
        if mask.any():
            force = strength / (distance[mask] + 1.0)
            unit = separation[mask] / distance[mask][:, None]
            repulsion = (unit * force[:, None]).sum(axis=0)
        else:
            repulsion = np.zeros(2)

        step_x = ctx.rng.symmetric(8) + repulsion[0] * 10
        step_y = ctx.rng.symmetric(8) + repulsion[1] * 10
        positions[idx, 0] = min(max(positions[idx, 0] + step_x, 0.0), map_limit)
        positions[idx, 1] = min(max(positions[idx, 1] + step_y, 0.0), map_limit)
        agent.position = Position(
            x=float(positions[idx, 0]), y=float(positions[idx, 1])
        )


def _crowding(active: List[Agent], x: float, y: float) -> int:
    count = 0
    for other in active:
        if math.hypot(other.position.x - x, other.position.y - y) < SPAWN_CROWD_RADIUS:
            count += 1
    return count


def _spawn_position(ctx: TickContext, parent: Agent, active: List[Agent]) -> Tuple[float, float]:
    map_size = ctx.config.simulation.map_size
    x = y = 0.0
    attempts = 0
    while attempts < SPAWN_MAX_ATTEMPTS:
        if attempts < SPAWN_RING_ATTEMPTS:
            angle = ctx.rng.next() * math.pi * 2
            radius = 100 + ctx.rng.next() * 100
            x = parent.position.x + math.cos(angle) * radius
            y = parent.position.y + math.sin(angle) * radius
        else:
            x = ctx.rng.next() * map_size
            y = ctx.rng.next() * map_size
        x = min(max(x, 0.0), map_size - 1)
        y = min(max(y, 0.0), map_size - 1)
        attempts += 1
        if _crowding(active, x, y) < SPAWN_CROWD_LIMIT:
            break
    return x, y


def process_births(ctx: TickContext) -> List[Agent]:
    """按出生率生成子代，返回本 tick 新生的代理人。"""

    world = ctx.world
    active = world.active_agents()
    max_population = ctx.config.simulation.max_population
    if len(active) >= max_population or not active:
        return []

    birth_rate = world.population.birth_rate
    base = int(math.floor(len(active) * birth_rate))
    bonus_chance = birth_rate * 0.5
    bonus = sum(1 for _ in active if ctx.rng.next() < bonus_chance)
    count = max(0, min(max_population - len(active), base + int(math.floor(bonus * 0.3))))

    born: List[Agent] = []
    for _ in range(count):
        parent1 = ctx.rng.choice(active)
        parent2 = ctx.rng.choice(active)
        child = create_agent(
            ctx.rng, ctx.ids, ctx.config, ctx.tick, parents=[parent1, parent2]
        )
        x, y = _spawn_position(ctx, parent1, active)
        child.position = Position(x=x, y=y)
        child.activity_log.append(
            AgentActivity(
                tick=ctx.tick,
                action="BORN",
                result=f"Born to {parent1.name} and {parent2.name}",
            )
        )
        world.agents.append(child)
        parent1.child_ids.append(child.id)
        parent2.child_ids.append(child.id)
        born.append(child)

    if born:
        logger.debug("Tick %s: %d births among %d active", ctx.tick, len(born), len(active))
        ctx.new_agents.extend(born)
        ctx.log(
            "POPULATION_MODULE",
            GovernanceAction.AGENT_CREATED,
            f"{len(born)} new citizen(s) born",
            "Population growth within optimal parameters.",
            affected_entities=[agent.id for agent in born],
        )
        if len(born) >= ctx.config.notifications.birth_threshold:
            total = len(active) + len(born)
            ctx.offer_notification(
                lambda: format_population_growth(
                    total, len(born), ctx.stats(), variant=ctx.tick
                )
            )
    return born


def death_probability(agent: Agent, death_rate: float) -> float:
    age_modifier = (agent.age / 1000) ** 2
    return death_rate * (1 + age_modifier) * (1 - agent.traits.longevity * 0.5)


def process_deaths(ctx: TickContext) -> List[str]:
    """对每个活跃代理人做一次死亡伯努利试验；死者保留在集合中。"""

    died: List[str] = []
    death_rate = ctx.world.population.death_rate
    for agent in ctx.world.agents:
        if agent.status != AgentStatus.ACTIVE:
            continue
        if ctx.rng.next() < death_probability(agent, death_rate):
            agent.status = AgentStatus.DECEASED
            agent.died_at = ctx.tick
            agent.activity_log.append(
                AgentActivity(
                    tick=ctx.tick,
                    action="DIED",
                    result=f"Lifecycle completed at age {agent.age}",
                )
            )
            died.append(agent.id)

    if died:
        ctx.removed_agent_ids.extend(died)
        ctx.log(
            "LIFECYCLE_MODULE",
            GovernanceAction.AGENT_TERMINATED,
            f"{len(died)} citizen(s) lifecycle completed",
            "Natural lifecycle termination. No anomalies detected.",
            affected_entities=list(died),
        )
    return died


def process_aging_and_pay(ctx: TickContext) -> float:
    """活跃代理人年龄 +1 并领取工资；工资从货币供应中扣除，返回发放总额。"""

    salary_base = ctx.config.population.salary_base
    paid = 0.0
    for agent in ctx.world.agents:
        if agent.status != AgentStatus.ACTIVE:
            continue
        agent.age += 1
        salary = salary_base * agent.traits.productivity
        agent.money += salary
        paid += salary
    ctx.world.economy.currency_supply -= paid
    return paid


__all__ = [
    "death_probability",
    "process_aging_and_pay",
    "process_births",
    "process_deaths",
    "process_movement",
]
