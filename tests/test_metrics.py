import pytest

from nocracy_sim.core.engine import SimulationEngine
from nocracy_sim.metrics.calculator import (
    BasicScorer,
    ScoringInput,
    composite_scores,
    gini_coefficient,
    metric_status,
)


def _scoring_input(engine: SimulationEngine, **overrides) -> ScoringInput:
    world = engine.world
    payload = dict(
        tick=world.clock.tick,
        stability_index=world.clock.stability_index,
        agents=engine.get_agents(),
        buildings=engine.get_buildings(),
        laws=engine.get_laws(),
        economy=world.economy.model_copy(deep=True),
        research=engine.get_research(),
        ethics=engine.get_ethics(),
    )
    payload.update(overrides)
    return ScoringInput(**payload)


def test_gini_coefficient_bounds() -> None:
    assert gini_coefficient([]) == 0.0
    assert gini_coefficient([0.0, 0.0]) == 0.0
    assert gini_coefficient([5.0, 5.0, 5.0]) == pytest.approx(0.0)
    # 一人持有全部财富：(n - 1) / n
    assert gini_coefficient([0.0, 0.0, 0.0, 100.0]) == pytest.approx(0.75)


def test_metric_status_directions() -> None:
    assert metric_status("population_total", 60) == "positive"
    assert metric_status("population_total", 30) == "warning"
    assert metric_status("population_total", 10) == "critical"
    assert metric_status("inflation_rate", 2) == "positive"
    assert metric_status("inflation_rate", 20) == "critical"
    assert metric_status("unknown_metric", 1) == "neutral"


# 测试：评分器为纯函数，相同输入给出相同输出且分数位于 [0, 100]。
def test_basic_scorer_is_pure_and_bounded(engine: SimulationEngine) -> None:
    scorer = BasicScorer()
    state = _scoring_input(engine)

    first = scorer.score(state)
    second = scorer.score(state)

    assert first == second
    assert set(first.metrics) == {
        "demography",
        "economy",
        "inequality",
        "resources",
        "governance",
        "stability",
        "research",
        "evolution",
        "ethics",
    }
    for value in first.scores.values():
        assert 0.0 <= value <= 100.0
    assert first.metrics["demography"]["population_total"] == 50.0


def test_top_metrics_track_history_and_delta(engine: SimulationEngine) -> None:
    scorer = BasicScorer()
    first = scorer.score(_scoring_input(engine))
    engine.tick()
    second = scorer.score(
        _scoring_input(engine, previous=first, previous_economy=None)
    )

    population = {m.id: m for m in second.top_metrics}["population_total"]
    earlier = {m.id: m for m in first.top_metrics}["population_total"]
    assert [point.tick for point in population.history] == [0, 1]
    assert population.delta == pytest.approx(population.value - earlier.value)


def test_inflation_uses_previous_economy(engine: SimulationEngine) -> None:
    previous = engine.world.economy.model_copy(deep=True)
    current = previous.model_copy(deep=True)
    current.currency_supply = previous.currency_supply * 1.2

    result = BasicScorer().score(
        _scoring_input(engine, economy=current, previous_economy=previous)
    )

    assert result.metrics["economy"]["inflation_rate"] == pytest.approx(20.0)
    assert any(alert.type == "inflation_spike" for alert in result.alerts)
    assert all(alert.id.startswith("ALT-000000-") for alert in result.alerts)


def test_composite_scores_handle_empty_world(engine: SimulationEngine) -> None:
    state = _scoring_input(engine, agents=[], buildings=[], laws=[])
    result = BasicScorer().score(state)

    assert result.metrics["demography"]["population_total"] == 0.0
    scores = composite_scores(result.metrics)
    assert all(0.0 <= v <= 100.0 for v in scores.values())
