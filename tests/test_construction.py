import pytest

from nocracy_sim.data_access.models import AgentRole, AgentStatus, GovernanceAction
from nocracy_sim.logic_modules import process_construction


def _only_architect(world):
    architect = world.agents[0]
    architect.role = AgentRole.ARCHITECT
    for agent in world.agents[1:]:
        if agent.role == AgentRole.ARCHITECT:
            agent.role = AgentRole.WORKER
    return architect


# 测试：建造成功时资金从建造者转入货币供应，并记录日志与活动。
def test_construction_transfers_cost_to_currency_supply(make_context) -> None:
    ctx = make_context(seed=6, tick=3)
    ctx.config.economy.building_chance = 1.0
    architect = _only_architect(ctx.world)
    architect.money = 5000.0
    supply_before = ctx.world.economy.currency_supply
    buildings_before = len(ctx.world.buildings)

    building = process_construction(ctx)

    assert building is not None
    cost = 5000.0 - architect.money
    assert 500 <= cost < 1000
    assert ctx.world.economy.currency_supply == pytest.approx(supply_before + cost)
    assert len(ctx.world.buildings) == buildings_before + 1
    assert ctx.new_buildings == [building]
    assert building.built_by == architect.id
    assert building.built_at == 3
    assert architect.activity_log[-1].target == building.id
    assert ctx.new_logs[-1].action == GovernanceAction.BUILDING_CONSTRUCTED


def test_construction_requires_funds(make_context) -> None:
    ctx = make_context(seed=6)
    ctx.config.economy.building_chance = 1.0
    architect = _only_architect(ctx.world)
    architect.money = 100.0

    assert process_construction(ctx) is None
    assert architect.money == 100.0
    assert ctx.new_buildings == []


def test_construction_falls_back_to_any_agent(make_context) -> None:
    ctx = make_context(seed=6)
    ctx.config.economy.building_chance = 1.0
    for agent in ctx.world.agents:
        if agent.role == AgentRole.ARCHITECT:
            agent.role = AgentRole.WORKER
        agent.money = 5000.0

    building = process_construction(ctx)

    assert building is not None
    builder = ctx.world.find_agent(building.built_by)
    assert builder.role != AgentRole.ARCHITECT


def test_construction_without_active_agents(make_context) -> None:
    ctx = make_context()
    for agent in ctx.world.agents:
        agent.status = AgentStatus.DECEASED

    assert process_construction(ctx) is None
    assert ctx.rng.draws == 0
