import math

import pytest

from nocracy_sim.data_access.models import GovernanceAction, GovernanceMode, Severity
from nocracy_sim.logic_modules import update_stability
from nocracy_sim.logic_modules.stability import stability_index


def test_stability_index_equal_weights() -> None:
    # 人口 1.0，产出 0.5，平等 0.75，完整度 1.0
    value = stability_index(50, 50, 500.0, 1000.0, 0.25, 1.0)
    assert value == pytest.approx(0.25 * (1.0 + 0.5 + 0.75 + 1.0))


def test_stability_index_is_clamped_and_nan_safe() -> None:
    assert stability_index(0, 50, 0.0, 1000.0, 1.0, 0.0) == 0.0
    assert stability_index(500, 50, 99999.0, 1000.0, 0.0, 1.0) == 1.0
    assert stability_index(50, 50, math.nan, 1000.0, 0.25, 1.0) == 0.0
    assert stability_index(50, 0, 1000.0, 1000.0, 0.0, 1.0) == 1.0


def test_emergency_entered_and_recovered_with_hysteresis(make_context) -> None:
    ctx = make_context()
    world = ctx.world
    world.population.total = 0
    world.economy.production_output = 0.0
    world.economy.inequality_index = 1.0
    world.clock.ethical_integrity = 0.5

    update_stability(ctx)
    assert world.clock.governance_mode == GovernanceMode.EMERGENCY
    assert ctx.new_logs[-1].action == GovernanceAction.MODE_CHANGED
    assert ctx.new_logs[-1].severity == Severity.WARNING

    # 0.6 位于迟滞区间内，保持紧急模式
    world.population.total = 50
    world.economy.production_output = 400.0
    world.economy.inequality_index = 1.0
    world.clock.ethical_integrity = 1.0
    update_stability(ctx)
    assert world.clock.stability_index == pytest.approx(0.6)
    assert world.clock.governance_mode == GovernanceMode.EMERGENCY

    world.economy.production_output = 1000.0
    world.economy.inequality_index = 0.2
    update_stability(ctx)
    assert world.clock.governance_mode == GovernanceMode.STANDARD
    assert ctx.new_logs[-1].summary == "Standard governance mode restored"


def test_ethical_override_not_changed_by_stability(make_context) -> None:
    ctx = make_context()
    world = ctx.world
    world.clock.governance_mode = GovernanceMode.ETHICAL_OVERRIDE
    world.population.total = 0
    world.economy.production_output = 0.0
    world.economy.inequality_index = 1.0

    update_stability(ctx)

    assert world.clock.governance_mode == GovernanceMode.ETHICAL_OVERRIDE
    assert ctx.new_logs == []
