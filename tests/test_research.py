import pytest

from nocracy_sim.data_access.models import (
    AgentRole,
    AgentStatus,
    GovernanceAction,
    ResearchStatus,
)
from nocracy_sim.logic_modules import process_research


def _single_researcher(world, creativity: float = 1.0):
    for agent in world.agents:
        if agent.role == AgentRole.RESEARCHER:
            agent.role = AgentRole.WORKER
    researcher = world.agents[0]
    researcher.role = AgentRole.RESEARCHER
    researcher.traits.creativity = creativity
    return researcher


# 测试：进度 0.999、单个创造力 1.0 的研究员，一个 tick 后节点完成并解锁后继。
def test_research_completes_and_unlocks_dependents(make_context) -> None:
    ctx = make_context(seed=3, tick=17)
    researcher = _single_researcher(ctx.world)
    tree = ctx.world.research
    node = tree.nodes[0]
    node.status = ResearchStatus.IN_PROGRESS
    node.progress = 0.999
    output_before = ctx.world.economy.production_output
    birth_rate_before = ctx.world.population.birth_rate

    result = process_research(ctx)

    assert result is node
    assert node.status == ResearchStatus.COMPLETED
    assert node.discovered_at == 17
    assert node.origin_ai == researcher.id
    assert tree.get("RSC-002").status == ResearchStatus.AVAILABLE
    assert tree.get("RSC-003").status == ResearchStatus.LOCKED
    assert ctx.world.economy.production_output == pytest.approx(
        output_before * (1 + node.economy_effect)
    )
    assert ctx.world.population.birth_rate == pytest.approx(
        birth_rate_before * (1 + node.population_effect)
    )
    assert ctx.new_logs[-1].action == GovernanceAction.RESEARCH_COMPLETED
    assert researcher.activity_log[-1].action == "COMPLETED_RESEARCH"


def test_progress_accumulates_without_completion(make_context) -> None:
    ctx = make_context(seed=3)
    _single_researcher(ctx.world, creativity=0.5)
    node = ctx.world.research.nodes[1]
    node.status = ResearchStatus.IN_PROGRESS

    assert process_research(ctx) is None
    assert node.progress == pytest.approx(0.01 * 0.5 * 1)
    assert node.status == ResearchStatus.IN_PROGRESS
    assert ctx.rng.draws == 0


def test_available_node_is_started_when_idle(make_context) -> None:
    ctx = make_context(seed=3)
    _single_researcher(ctx.world)

    started = process_research(ctx)

    assert started is not None
    assert started.status == ResearchStatus.IN_PROGRESS
    in_progress = [
        n for n in ctx.world.research.nodes if n.status == ResearchStatus.IN_PROGRESS
    ]
    assert in_progress == [started]
    assert ctx.new_logs[-1].action == GovernanceAction.RESOURCE_ALLOCATION


def test_research_idle_without_researchers(make_context) -> None:
    ctx = make_context(seed=3)
    for agent in ctx.world.agents:
        if agent.role == AgentRole.RESEARCHER:
            agent.status = AgentStatus.DECEASED

    assert process_research(ctx) is None
    assert all(
        n.status in (ResearchStatus.AVAILABLE, ResearchStatus.LOCKED)
        for n in ctx.world.research.nodes
    )


def test_completed_nodes_stay_completed(engine) -> None:
    for _ in range(400):
        engine.tick()
    completed = {
        n.id: n.discovered_at
        for n in engine.world.research.nodes
        if n.status == ResearchStatus.COMPLETED
    }
    for _ in range(100):
        engine.tick()
    for node_id, discovered_at in completed.items():
        node = engine.world.research.get(node_id)
        assert node.status == ResearchStatus.COMPLETED
        assert node.discovered_at == discovered_at
