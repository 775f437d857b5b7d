"""治理子系统：立法与法律生命周期。

法律状态只沿 PENDING → ACTIVE → DEPRECATED → REPEALED 单向推进；宪法性法律
永远不会被选为修改对象。生命周期候选只包含 ACTIVE 状态的法律，因此一旦被
标记为 DEPRECATED，法律将停留在该状态。
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..core.entity_factory import create_law
from ..data_access.models import (
    AgentActivity,
    AgentRole,
    GovernanceAction,
    Law,
    LawAction,
    LawHistoryEntry,
    LawStatus,
)
from ..notifications.formatters import format_law_created, format_law_modified
from .context import TickContext

logger = logging.getLogger(__name__)

REPEAL_REASON = "Law determined ineffective or superseded by newer legislation."
DEPRECATE_REASON = "Law marked for review due to changing system conditions."


class LawTransitionError(ValueError):
    """Raised when a law status change would move backwards or touch the constitution."""

    def __init__(self, law: Law, target: LawStatus) -> None:
        super().__init__(
            f"Cannot move law {law.id} from {law.status.value} to {target.value}"
        )
        self.law_id = law.id
        self.current = law.status
        self.target = target


def transition_law(law: Law, target: LawStatus, tick: int, reason: str) -> None:
    """把法律推进到 DEPRECATED 或 REPEALED 并写入历史；拒绝回退与修改宪法。"""

    if (
        law.is_constitutional
        or target not in (LawStatus.DEPRECATED, LawStatus.REPEALED)
        or target.rank <= law.status.rank
    ):
        raise LawTransitionError(law, target)
    law.status = target
    if target == LawStatus.REPEALED:
        law.repealed_at = tick
        action = LawAction.REPEALED
    else:
        law.modified_at = tick
        action = LawAction.DEPRECATED
    law.history.append(LawHistoryEntry(tick=tick, action=action, reason=reason))


def _create_law(ctx: TickContext) -> Optional[Law]:
    if ctx.rng.next() >= ctx.config.governance.law_creation_chance:
        return None
    governors = ctx.world.active_agents(AgentRole.GOVERNOR)
    if not governors:
        return None

    governor = ctx.rng.choice(governors)
    law = create_law(ctx.rng, ctx.ids, ctx.tick, governor.id)
    ctx.world.laws.append(law)
    ctx.new_laws.append(law)
    governor.activity_log.append(
        AgentActivity(
            tick=ctx.tick,
            action="CREATED_LAW",
            target=law.id,
            result=f"Enacted {law.title}",
        )
    )
    ctx.log(
        governor.name,
        GovernanceAction.LAW_CREATED,
        f"New law: {law.title}",
        law.reasoning,
        affected_entities=[law.id],
    )
    ctx.offer_notification(
        lambda: format_law_created(
            law.title,
            law.category.value,
            law.id,
            law.reasoning,
            ctx.stats(),
            variant=ctx.tick,
        )
    )
    return law


def _update_lifecycle(ctx: TickContext) -> None:
    candidates = [
        law
        for law in ctx.world.laws
        if law.status == LawStatus.ACTIVE and not law.is_constitutional
    ]
    if not candidates:
        return
    if ctx.rng.next() >= ctx.config.governance.law_modification_chance:
        return

    law = ctx.rng.choice(candidates)
    governors = ctx.world.active_agents(AgentRole.GOVERNOR)
    if not governors:
        return

    settings = ctx.config.governance
    governor = ctx.rng.choice(governors)
    age = ctx.tick - law.created_at

    if age > settings.repeal_age and ctx.rng.next() < settings.repeal_chance:
        transition_law(law, LawStatus.REPEALED, ctx.tick, REPEAL_REASON)
        ctx.log(
            governor.name,
            GovernanceAction.LAW_REPEALED,
            f"Repealed law: {law.title}",
            "Law no longer serves optimal system function.",
            affected_entities=[law.id],
        )
        status, reason = LawStatus.REPEALED, REPEAL_REASON
    elif age > settings.deprecate_age and ctx.rng.next() < settings.deprecate_chance:
        transition_law(law, LawStatus.DEPRECATED, ctx.tick, DEPRECATE_REASON)
        ctx.log(
            governor.name,
            GovernanceAction.LAW_MODIFIED,
            f"Deprecated law: {law.title}",
            "Law effectiveness under review.",
            affected_entities=[law.id],
        )
        status, reason = LawStatus.DEPRECATED, DEPRECATE_REASON
    else:
        return

    logger.debug("Law %s moved to %s at tick %s", law.id, status.value, ctx.tick)
    ctx.offer_notification(
        lambda: format_law_modified(
            law.title,
            law.id,
            status.value,
            ctx.stats(),
            reason=reason,
            variant=ctx.tick,
        )
    )


def process_governance(ctx: TickContext) -> List[Law]:
    """返回本 tick 新颁布的法律（至多一条）。"""

    created = _create_law(ctx)
    _update_lifecycle(ctx)
    return [created] if created is not None else []


__all__ = ["LawTransitionError", "process_governance", "transition_law"]
