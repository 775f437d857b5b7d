"""稳定度聚合与治理模式状态机。

稳定度为人口、产出、平等与伦理完整度四个因子的等权平均。模式切换带迟滞：
STANDARD 在稳定度低于下阈值时进入 EMERGENCY，EMERGENCY 在高于上阈值时恢复。
ETHICAL_OVERRIDE 只由伦理子系统进出。
"""

from __future__ import annotations

import math

from ..data_access.models import GovernanceAction, GovernanceMode, Severity
from .context import TickContext


def stability_index(
    population: int,
    initial_population: int,
    production: float,
    target_production: float,
    inequality: float,
    integrity: float,
) -> float:
    """四因子等权平均，结果裁剪到 [0, 1]；任何 NaN 输入得到 0。"""

    if any(math.isnan(float(v)) for v in (production, inequality, integrity)):
        return 0.0
    population_factor = min(1.0, population / max(1, initial_population))
    economic_factor = min(1.0, production / target_production)
    inequality_factor = 1.0 - inequality
    value = 0.25 * (population_factor + economic_factor + inequality_factor + integrity)
    return max(0.0, min(1.0, value))


def update_stability(ctx: TickContext) -> float:
    world = ctx.world
    clock = world.clock
    thresholds = ctx.config.stability

    clock.stability_index = stability_index(
        world.population.total,
        ctx.config.simulation.initial_population,
        world.economy.production_output,
        ctx.config.economy.target_production_output,
        world.economy.inequality_index,
        clock.ethical_integrity,
    )

    previous = clock.governance_mode
    if clock.stability_index < thresholds.emergency_below and previous == GovernanceMode.STANDARD:
        clock.governance_mode = GovernanceMode.EMERGENCY
        ctx.log(
            "STABILITY_MODULE",
            GovernanceAction.MODE_CHANGED,
            "Emergency governance mode engaged",
            f"Stability index {clock.stability_index:.3f} fell below "
            f"{thresholds.emergency_below}.",
            severity=Severity.WARNING,
        )
    elif clock.stability_index > thresholds.recover_above and previous == GovernanceMode.EMERGENCY:
        clock.governance_mode = GovernanceMode.STANDARD
        ctx.log(
            "STABILITY_MODULE",
            GovernanceAction.MODE_CHANGED,
            "Standard governance mode restored",
            f"Stability index {clock.stability_index:.3f} recovered above "
            f"{thresholds.recover_above}.",
        )
    return clock.stability_index


__all__ = ["stability_index", "update_stability"]
