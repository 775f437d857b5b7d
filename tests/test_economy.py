import pytest

from nocracy_sim.data_access.models import AgentRole, AgentStatus, GovernanceAction
from nocracy_sim.logic_modules import process_economy
from nocracy_sim.logic_modules.economy import inequality_index, production_output


def test_production_output_formula() -> None:
    assert production_output([]) == 0.0
    # floor(1000 * 0.75 * 20 / 10)
    assert production_output([0.75] * 20) == 1500.0
    assert production_output([0.5, 1.0]) == 150.0


def test_inequality_index_edge_cases() -> None:
    assert inequality_index([], 0.33) == 0.33
    assert inequality_index([0.0, 0.0], 0.33) == 0.25
    assert inequality_index([100.0, 100.0], 0.33) == 0.0
    # (300 - 100) / (4 * 200)
    assert inequality_index([100.0, 300.0], 0.0) == pytest.approx(0.25)
    assert inequality_index([0.0, 0.0, 0.0, 0.0, 10000.0], 0.0) == 1.0


def test_economy_updates_aggregates(make_context) -> None:
    ctx = make_context(seed=13)
    ctx.config.economy.economic_event_chance = 0.0
    economy = ctx.world.economy
    workers = ctx.world.active_agents(AgentRole.WORKER)

    assert process_economy(ctx) is None

    assert economy.production_output == production_output(
        [w.traits.productivity for w in workers]
    )
    assert economy.currency_supply >= ctx.config.economy.min_currency_supply
    assert 0.0 <= economy.inequality_index <= 1.0
    # 货币漂移 + 四项资源 + 事件抽签
    assert ctx.rng.draws == 6


def test_currency_supply_never_below_floor(make_context) -> None:
    ctx = make_context(seed=13)
    ctx.config.economy.economic_event_chance = 0.0
    ctx.world.economy.currency_supply = 0.0

    process_economy(ctx)

    assert ctx.world.economy.currency_supply == ctx.config.economy.min_currency_supply


def test_resources_never_negative(make_context) -> None:
    ctx = make_context(seed=13)
    ctx.config.economy.economic_event_chance = 0.0
    resources = ctx.world.economy.resource_distribution
    resources.food = resources.energy = resources.materials = resources.technology = 0.0

    for _ in range(200):
        process_economy(ctx)

    assert min(resources.food, resources.energy, resources.materials, resources.technology) >= 0.0


def test_market_event_scales_output_and_logs(make_context) -> None:
    ctx = make_context(seed=13, tick=7)
    ctx.config.economy.economic_event_chance = 1.0
    workers = ctx.world.active_agents(AgentRole.WORKER)
    base = production_output([w.traits.productivity for w in workers])

    event = process_economy(ctx)

    assert event is not None
    assert -0.1 <= event.impact < 0.1
    assert ctx.world.economy.market_events[-1] == event
    assert ctx.world.economy.production_output == pytest.approx(base * (1 + event.impact))
    assert ctx.new_logs[-1].action == GovernanceAction.ECONOMIC_INTERVENTION
    assert ctx.new_logs[-1].affected_entities == [event.id]


def test_market_event_log_is_bounded(make_context) -> None:
    ctx = make_context(seed=13)
    ctx.config.economy.economic_event_chance = 1.0
    ctx.config.economy.market_event_limit = 5

    for _ in range(12):
        process_economy(ctx)

    assert len(ctx.world.economy.market_events) == 5


def test_production_zero_without_workers(make_context) -> None:
    ctx = make_context(seed=13)
    ctx.config.economy.economic_event_chance = 0.0
    for agent in ctx.world.agents:
        if agent.role == AgentRole.WORKER:
            agent.status = AgentStatus.DECEASED

    process_economy(ctx)

    assert ctx.world.economy.production_output == 0.0
