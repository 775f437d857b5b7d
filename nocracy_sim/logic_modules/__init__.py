"""按 tick 顺序执行的世界子系统。

每个 ``process_*`` 函数接收同一个 :class:`TickContext`，同步修改世界状态并把
产生的日志、实体记录到上下文中。调用顺序由编排器固定。
"""

from .agent_lifecycle import (
    process_aging_and_pay,
    process_births,
    process_deaths,
    process_movement,
)
from .construction import process_construction
from .context import TickContext
from .economy import process_economy
from .ethics import process_ethics
from .governance import process_governance
from .research import process_research
from .stability import update_stability

__all__ = [
    "TickContext",
    "process_aging_and_pay",
    "process_births",
    "process_construction",
    "process_deaths",
    "process_economy",
    "process_ethics",
    "process_governance",
    "process_movement",
    "process_research",
    "update_stability",
]
