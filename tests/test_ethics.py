import pytest

from nocracy_sim.data_access.models import GovernanceAction, GovernanceMode, Severity
from nocracy_sim.logic_modules import process_ethics
from nocracy_sim.logic_modules.ethics import ethical_integrity


# 测试：不平等指数强制为 0.6 时执行一次纠正：0.54、税率 +0.02、进入伦理覆盖模式。
def test_inequality_triggers_self_correction(make_context) -> None:
    ctx = make_context(seed=5, tick=12)
    ctx.config.ethics.blocked_action_chance = 0.0
    economy = ctx.world.economy
    economy.inequality_index = 0.6
    taxation_before = economy.taxation_level

    process_ethics(ctx)

    assert economy.inequality_index == pytest.approx(0.54)
    assert economy.taxation_level == pytest.approx(taxation_before + 0.02)
    corrections = ctx.world.ethics.self_corrections
    assert len(corrections) == 1
    assert corrections[0].tick == 12
    assert ctx.world.clock.governance_mode == GovernanceMode.ETHICAL_OVERRIDE
    assert ctx.new_logs[-1].action == GovernanceAction.ETHICAL_OVERRIDE
    assert ctx.new_logs[-1].severity == Severity.WARNING
    assert ctx.world.ethics.intervention_count == 1


def test_taxation_is_capped(make_context) -> None:
    ctx = make_context(seed=5)
    ctx.config.ethics.blocked_action_chance = 0.0
    economy = ctx.world.economy
    economy.taxation_level = 0.29
    economy.inequality_index = 0.9

    process_ethics(ctx)

    assert economy.taxation_level == pytest.approx(0.3)


def test_override_mode_released_when_inequality_falls(make_context) -> None:
    ctx = make_context(seed=5)
    ctx.config.ethics.blocked_action_chance = 0.0
    ctx.world.clock.governance_mode = GovernanceMode.ETHICAL_OVERRIDE
    ctx.world.economy.inequality_index = 0.2

    process_ethics(ctx)

    assert ctx.world.clock.governance_mode == GovernanceMode.STANDARD


def test_correction_below_override_threshold_keeps_mode(make_context) -> None:
    ctx = make_context(seed=5)
    ctx.config.ethics.blocked_action_chance = 0.0
    ctx.world.economy.inequality_index = 0.48

    process_ethics(ctx)

    assert ctx.world.economy.inequality_index == pytest.approx(0.432)
    assert ctx.world.clock.governance_mode == GovernanceMode.STANDARD


def test_blocked_action_logged_as_critical(make_context, caplog) -> None:
    ctx = make_context(seed=5, tick=8)
    ctx.config.ethics.blocked_action_chance = 1.0
    ctx.world.economy.inequality_index = 0.1

    with caplog.at_level("WARNING", logger="nocracy_sim.logic_modules.ethics"):
        process_ethics(ctx)

    blocked = ctx.world.ethics.blocked_actions
    assert len(blocked) == 1
    assert blocked[0].tick == 8
    assert ctx.new_logs[-1].severity == Severity.CRITICAL
    assert ctx.world.ethics.intervention_count == 1
    assert "blocked action" in caplog.text


def test_integrity_decays_with_recent_corrections(make_context) -> None:
    ctx = make_context(seed=5, tick=50)
    ctx.config.ethics.blocked_action_chance = 0.0
    for _ in range(4):
        ctx.world.economy.inequality_index = 0.9
        process_ethics(ctx)

    assert ctx.world.clock.ethical_integrity == pytest.approx(1 - 4 * 0.05)

    ctx.world.clock.tick = 50 + ctx.config.ethics.integrity_window
    assert ethical_integrity(ctx) == 1.0


def test_integrity_has_floor(make_context) -> None:
    ctx = make_context(seed=5, tick=10)
    ctx.config.ethics.blocked_action_chance = 0.0
    for _ in range(30):
        ctx.world.economy.inequality_index = 0.9
        process_ethics(ctx)

    assert ctx.world.clock.ethical_integrity == ctx.config.ethics.integrity_floor
