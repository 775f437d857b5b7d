"""单个 tick 内各子系统共享的上下文对象。

``TickContext`` 持有世界状态、随机源、标识符序列与配置，并收集本 tick 产生的
新日志、新代理人、新法律与新建筑，供编排器在 tick 结束时组装增量。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..core.entity_factory import IdSequence, create_log
from ..core.random_source import DeterministicRandom
from ..data_access.models import (
    Agent,
    Building,
    GovernanceAction,
    GovernanceLog,
    Law,
    Severity,
    WorldState,
)
from ..notifications.formatters import StatsSummary
from ..notifications.notifier import NotificationDispatcher
from ..utils.settings import WorldConfig


@dataclass
class TickContext:
    world: WorldState
    rng: DeterministicRandom
    ids: IdSequence
    config: WorldConfig
    timestamp: float = 0.0
    dispatcher: Optional[NotificationDispatcher] = None
    new_logs: List[GovernanceLog] = field(default_factory=list)
    new_agents: List[Agent] = field(default_factory=list)
    removed_agent_ids: List[str] = field(default_factory=list)
    new_laws: List[Law] = field(default_factory=list)
    new_buildings: List[Building] = field(default_factory=list)

    @property
    def tick(self) -> int:
        return self.world.clock.tick

    def log(
        self,
        module: str,
        action: GovernanceAction,
        summary: str,
        reasoning: str,
        severity: Severity = Severity.INFO,
        affected_entities: Optional[List[str]] = None,
    ) -> GovernanceLog:
        entry = create_log(
            self.ids,
            self.tick,
            self.timestamp,
            module,
            action,
            summary,
            reasoning,
            severity=severity,
            affected_entities=affected_entities,
        )
        self.new_logs.append(entry)
        return entry

    def stats(self) -> StatsSummary:
        economy = self.world.economy
        return StatsSummary(
            population=len(self.world.active_agents()),
            production_output=economy.production_output,
            currency_supply=economy.currency_supply,
            inequality_index=economy.inequality_index,
        )

    def offer_notification(self, build_message: Callable[[], str]) -> bool:
        """抽签决定是否外发通知。

        抽签总会消耗一次随机数，与通知器是否存在、是否启用无关，
        因此通知配置不会改变世界演化序列。
        """
        settings = self.config.notifications
        selected = self.rng.next() < settings.notify_chance
        if not (selected and settings.enabled and self.dispatcher is not None):
            return False
        self.dispatcher.dispatch(build_message())
        return True


__all__ = ["TickContext"]
