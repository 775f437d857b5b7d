"""伦理监督子系统（"LOVE EQUATION"）。

不平等指数超过宪法阈值时自动执行再分配并记录自我纠正；纠正后仍高于覆盖阈值
则进入 ETHICAL_OVERRIDE 模式，否则在下一次检查时回到 STANDARD。伦理完整度随
最近窗口内的纠正次数下降，但不低于下限。
"""

from __future__ import annotations

import logging

from ..core.entity_factory import create_blocked_action, create_self_correction
from ..data_access.models import GovernanceAction, GovernanceMode, Severity
from .context import TickContext

logger = logging.getLogger(__name__)

MODULE_NAME = "ETHICS_MODULE"


def ethical_integrity(ctx: TickContext) -> float:
    settings = ctx.config.ethics
    recent = sum(
        1
        for correction in ctx.world.ethics.self_corrections
        if ctx.tick - correction.tick < settings.integrity_window
    )
    return max(settings.integrity_floor, 1 - recent * settings.integrity_penalty)


def process_ethics(ctx: TickContext) -> None:
    world = ctx.world
    economy = world.economy
    clock = world.clock
    ethics = world.ethics
    settings = ctx.config.ethics

    if economy.inequality_index > settings.inequality_threshold:
        economy.inequality_index *= settings.inequality_decay
        economy.taxation_level = min(
            settings.taxation_cap, economy.taxation_level + settings.taxation_step
        )
        correction = create_self_correction(
            ctx.ids, ctx.tick, settings.inequality_threshold
        )
        ethics.self_corrections.append(correction)
        ctx.log(
            MODULE_NAME,
            GovernanceAction.ETHICAL_OVERRIDE,
            "Inequality correction applied",
            "Constitutional Article II violation detected. "
            "Automatic redistribution protocol engaged.",
            severity=Severity.WARNING,
            affected_entities=[correction.id],
        )
        if economy.inequality_index > settings.override_threshold:
            clock.governance_mode = GovernanceMode.ETHICAL_OVERRIDE
    elif clock.governance_mode == GovernanceMode.ETHICAL_OVERRIDE:
        clock.governance_mode = GovernanceMode.STANDARD

    if ctx.rng.next() < settings.blocked_action_chance:
        blocked = create_blocked_action(ctx.ids, ctx.tick)
        ethics.blocked_actions.append(blocked)
        logger.warning("Ethics framework blocked action at tick %s", ctx.tick)
        ctx.log(
            MODULE_NAME,
            GovernanceAction.ETHICAL_OVERRIDE,
            "Action blocked by ethical framework",
            blocked.reason,
            severity=Severity.CRITICAL,
            affected_entities=[blocked.id],
        )

    ethics.intervention_count = len(ethics.self_corrections) + len(ethics.blocked_actions)
    clock.ethical_integrity = ethical_integrity(ctx)


__all__ = ["ethical_integrity", "process_ethics"]
