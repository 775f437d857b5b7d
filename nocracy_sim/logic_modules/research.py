"""研究子系统。

每个 tick 至多推进一个进行中的研究节点，或在没有进行中节点时启动一个可用节点。
完成的节点解锁其后继节点，并把效果作用到产出与出生率上。
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..data_access.models import (
    AgentActivity,
    AgentRole,
    GovernanceAction,
    ResearchNode,
    ResearchStatus,
)
from ..notifications.formatters import format_research_completed
from .context import TickContext


def unlock_dependents(ctx: TickContext, node: ResearchNode) -> None:
    tree = ctx.world.research
    for connection in tree.connections:
        if connection.source != node.id:
            continue
        dependent = tree.get(connection.target)
        if dependent is not None and dependent.status == ResearchStatus.LOCKED:
            dependent.status = ResearchStatus.AVAILABLE


def _complete(ctx: TickContext, node: ResearchNode, researchers) -> None:
    world = ctx.world
    node.status = ResearchStatus.COMPLETED
    node.discovered_at = ctx.tick
    discoverer = ctx.rng.choice(researchers)
    node.origin_ai = discoverer.id
    discoverer.activity_log.append(
        AgentActivity(
            tick=ctx.tick,
            action="COMPLETED_RESEARCH",
            target=node.id,
            result=f"Discovered {node.name}",
        )
    )
    unlock_dependents(ctx, node)
    world.economy.production_output *= 1 + node.economy_effect
    world.population.birth_rate *= 1 + node.population_effect

    summary_text = node.long_term_projection or node.description
    ctx.log(
        discoverer.name,
        GovernanceAction.RESEARCH_COMPLETED,
        f"Research completed: {node.name}",
        summary_text,
        affected_entities=[node.id, discoverer.id],
    )
    ctx.offer_notification(
        lambda: format_research_completed(
            node.name, summary_text, discoverer.id, ctx.stats(), variant=ctx.tick
        )
    )


def process_research(ctx: TickContext) -> Optional[ResearchNode]:
    """推进研究；返回本 tick 完成或启动的节点。"""

    researchers = ctx.world.active_agents(AgentRole.RESEARCHER)
    if not researchers:
        return None

    tree = ctx.world.research
    in_progress = [n for n in tree.nodes if n.status == ResearchStatus.IN_PROGRESS]
    mean_creativity = float(np.mean([r.traits.creativity for r in researchers]))
    rate = ctx.config.research.progress_rate

    for node in in_progress:
        node.progress += rate * mean_creativity * len(researchers)
        if node.progress >= 1:
            _complete(ctx, node, researchers)
            return node

    if in_progress:
        return None

    available = [n for n in tree.nodes if n.status == ResearchStatus.AVAILABLE]
    if not available:
        return None
    node = ctx.rng.choice(available)
    node.status = ResearchStatus.IN_PROGRESS
    ctx.log(
        "RESEARCH_MODULE",
        GovernanceAction.RESOURCE_ALLOCATION,
        f"Research initiated: {node.name}",
        "Resources allocated to new research project.",
        affected_entities=[node.id],
    )
    return node


__all__ = ["process_research", "unlock_dependents"]
