import pytest

from nocracy_sim.data_access.models import (
    AgentRole,
    AgentStatus,
    GovernanceAction,
    LawAction,
    LawStatus,
)
from nocracy_sim.logic_modules import process_governance
from nocracy_sim.logic_modules.governance import LawTransitionError, transition_law


def _ensure_governor(world):
    governor = world.agents[0]
    governor.role = AgentRole.GOVERNOR
    return governor


def _ordinary_law(ctx, created_at: int = 0):
    ctx.config.governance.law_creation_chance = 1.0
    ctx.config.governance.law_modification_chance = 0.0
    (law,) = process_governance(ctx)
    law.created_at = created_at
    ctx.config.governance.law_creation_chance = 0.0
    return law


def test_law_creation_by_governor(make_context) -> None:
    ctx = make_context(seed=31, tick=4)
    _ensure_governor(ctx.world)
    ctx.config.governance.law_creation_chance = 1.0
    ctx.config.governance.law_modification_chance = 0.0
    laws_before = len(ctx.world.laws)

    created = process_governance(ctx)

    assert len(created) == 1
    law = created[0]
    assert len(ctx.world.laws) == laws_before + 1
    assert ctx.new_laws == created
    assert law.created_at == 4
    assert law.generated_by in {a.id for a in ctx.world.active_agents(AgentRole.GOVERNOR)}
    assert ctx.new_logs[-1].action == GovernanceAction.LAW_CREATED


def test_no_law_without_governors(make_context) -> None:
    ctx = make_context(seed=31)
    ctx.config.governance.law_creation_chance = 1.0
    for agent in ctx.world.agents:
        if agent.role == AgentRole.GOVERNOR:
            agent.status = AgentStatus.DECEASED

    assert process_governance(ctx) == []


def test_transition_rejects_backwards_and_constitution(engine) -> None:
    constitution = engine.world.laws[0]
    assert constitution.is_constitutional
    with pytest.raises(LawTransitionError):
        transition_law(constitution, LawStatus.REPEALED, 10, "nope")

    law = constitution.model_copy(deep=True, update={"is_constitutional": False})
    transition_law(law, LawStatus.DEPRECATED, 10, "review")
    assert law.status == LawStatus.DEPRECATED
    assert law.modified_at == 10
    assert law.history[-1].action == LawAction.DEPRECATED

    with pytest.raises(LawTransitionError):
        transition_law(law, LawStatus.ACTIVE, 11, "revive")
    with pytest.raises(LawTransitionError):
        transition_law(law, LawStatus.DEPRECATED, 11, "again")

    transition_law(law, LawStatus.REPEALED, 12, "gone")
    assert law.repealed_at == 12
    assert law.history[-1].action == LawAction.REPEALED


def test_transition_only_moves_to_deprecated_or_repealed(engine) -> None:
    law = engine.world.laws[0].model_copy(
        deep=True, update={"is_constitutional": False, "status": LawStatus.PENDING}
    )
    with pytest.raises(LawTransitionError):
        transition_law(law, LawStatus.ACTIVE, 3, "activate")
    assert law.status == LawStatus.PENDING
    assert [entry.action for entry in law.history] == [LawAction.CREATED]


# 测试：足够老的法律会被废止，且状态只向前推进。
def test_old_law_is_repealed(make_context) -> None:
    ctx = make_context(seed=31, tick=0)
    _ensure_governor(ctx.world)
    law = _ordinary_law(ctx)
    ctx.world.clock.tick = 1000
    ctx.config.governance.law_modification_chance = 1.0
    ctx.config.governance.repeal_chance = 1.0

    process_governance(ctx)

    assert law.status == LawStatus.REPEALED
    assert law.repealed_at == 1000
    assert ctx.new_logs[-1].action == GovernanceAction.LAW_REPEALED


def test_middle_aged_law_is_deprecated(make_context) -> None:
    ctx = make_context(seed=31, tick=0)
    _ensure_governor(ctx.world)
    law = _ordinary_law(ctx)
    ctx.world.clock.tick = 300
    ctx.config.governance.law_modification_chance = 1.0
    ctx.config.governance.deprecate_chance = 1.0

    process_governance(ctx)

    assert law.status == LawStatus.DEPRECATED
    assert law.modified_at == 300
    assert ctx.new_logs[-1].action == GovernanceAction.LAW_MODIFIED


def test_deprecated_law_is_not_revisited(make_context) -> None:
    ctx = make_context(seed=31, tick=0)
    _ensure_governor(ctx.world)
    law = _ordinary_law(ctx)
    transition_law(law, LawStatus.DEPRECATED, 1, "review")
    ctx.world.clock.tick = 5000
    ctx.config.governance.law_modification_chance = 1.0
    ctx.config.governance.repeal_chance = 1.0
    draws_before = ctx.rng.draws

    process_governance(ctx)

    assert law.status == LawStatus.DEPRECATED
    # 只有立法抽签，没有候选法律时不进入生命周期抽签
    assert ctx.rng.draws == draws_before + 1


def test_constitution_survives_long_run(engine) -> None:
    engine.config.governance.law_creation_chance = 0.5
    engine.config.governance.law_modification_chance = 0.5
    snapshot = [law.model_dump() for law in engine.world.laws if law.is_constitutional]

    for _ in range(300):
        engine.tick()

    after = [law.model_dump() for law in engine.world.laws if law.is_constitutional]
    assert after == snapshot
    for law in engine.world.laws:
        assert law.history[0].action == LawAction.CREATED
