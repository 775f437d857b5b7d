"""世界指标、综合评分与阈值告警的计算。

``BasicScorer`` 是引擎可选的评分协作者：输入一份世界状态的只读副本，输出分类
指标、三项综合评分（0-100）、十项重点指标（带变化量与短历史）以及告警列表。
计算是纯函数：不读取引擎随机源，跨 tick 的信息（上一轮结果、上一轮经济数据）
全部通过 :class:`ScoringInput` 显式传入。
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Protocol, Sequence

import numpy as np
from pydantic import BaseModel, Field

from ..data_access.models import (
    Agent,
    AgentRole,
    AgentStatus,
    Building,
    BuildingType,
    Economy,
    EthicsFramework,
    Law,
    LawStatus,
    ResearchStatus,
    ResearchTree,
)

HISTORY_LENGTH = 100

_LABOUR_ROLES = {
    AgentRole.WORKER,
    AgentRole.RESEARCHER,
    AgentRole.ECONOMIST,
    AgentRole.ARCHITECT,
    AgentRole.MERCHANT,
}
_PRODUCTION_BUILDINGS = {
    BuildingType.FACTORY,
    BuildingType.FARM,
    BuildingType.OFFICE,
    BuildingType.RESEARCH_LAB,
}


class ScoringInput(BaseModel):
    tick: int
    stability_index: float
    agents: List[Agent] = Field(default_factory=list)
    buildings: List[Building] = Field(default_factory=list)
    laws: List[Law] = Field(default_factory=list)
    economy: Economy
    research: ResearchTree
    ethics: EthicsFramework
    previous_economy: Optional[Economy] = None
    previous: Optional["ScoringResult"] = None


class MetricPoint(BaseModel):
    tick: int
    value: float


class TopMetric(BaseModel):
    id: str
    name: str
    category: str
    value: float
    delta: float = 0.0
    delta_percent: float = 0.0
    unit: str = ""
    status: str = "neutral"
    history: List[MetricPoint] = Field(default_factory=list)


class Alert(BaseModel):
    id: str
    type: str
    severity: str
    title: str
    message: str
    tick: int
    resolved: bool = False
    related_metrics: List[str] = Field(default_factory=list)


class ScoringResult(BaseModel):
    metrics: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    scores: Dict[str, float] = Field(default_factory=dict)
    top_metrics: List[TopMetric] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)


ScoringInput.model_rebuild()


class Scorer(Protocol):
    def score(self, state: ScoringInput) -> ScoringResult:  # pragma: no cover - interface
        """根据世界状态计算指标与评分。"""


# (名称, 分类, 单位, 越高越好, 告警阈值, 严重阈值)；阈值为「越过即触发」的边界
METRIC_DEFINITIONS: Dict[str, tuple] = {
    "population_total": ("Population", "demography", "citizens", True, 40, 25),
    "state_health_score": ("State Health", "scores", "pts", True, 50, 30),
    "legitimacy_score": ("Legitimacy", "scores", "pts", True, 50, 30),
    "stability_index": ("Stability", "stability", "%", True, 50, 30),
    "gdp_per_capita": ("GDP per Capita", "economy", "units", True, 100, 50),
    "inflation_rate": ("Inflation", "economy", "%", False, 8, 15),
    "gini_income": ("Gini (Income)", "inequality", "", False, 0.4, 0.5),
    "resource_stockpiles_summary": ("Resource Stockpiles", "resources", "%", True, 40, 20),
    "research_throughput": ("Research Throughput", "research", "pts", True, 5, 2),
    "ethics_blocks_triggered": ("Ethics Blocks", "ethics", "count", False, 1, 5),
}


def _active(agents: Sequence[Agent]) -> List[Agent]:
    return [a for a in agents if a.status == AgentStatus.ACTIVE]


def _median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    return float(ordered[len(ordered) // 2])


def gini_coefficient(values: Sequence[float]) -> float:
    """基于排序的 Gini 系数，裁剪到 [0, 1]；总量非正时为 0。"""

    data = np.sort(np.asarray(values, dtype=float))
    n = data.size
    if n == 0:
        return 0.0
    total = data.sum()
    if total <= 0:
        return 0.0
    weights = 2 * np.arange(1, n + 1) - n - 1
    gini = float((weights * data).sum() / (n * total))
    return max(0.0, min(1.0, gini))


def demography_metrics(state: ScoringInput) -> Dict[str, float]:
    active = _active(state.agents)
    total = len(active)
    window_start = state.tick - 100
    births = sum(1 for a in active if a.created_at > 0 and a.created_at >= window_start)
    deaths = sum(
        1
        for a in state.agents
        if a.status == AgentStatus.DECEASED
        and a.died_at is not None
        and a.died_at >= window_start
    )
    birth_rate = births / total * 100 if total else 0.0
    death_rate = deaths / total * 100 if total else 0.0
    labour = sum(1 for a in active if a.role in _LABOUR_ROLES)
    return {
        "population_total": float(total),
        "birth_rate": birth_rate,
        "death_rate": death_rate,
        "population_growth_rate": birth_rate - death_rate,
        "median_age": _median([a.age for a in active]),
        "dependency_ratio": (total - labour) / labour if labour else 0.0,
    }


def economy_metrics(state: ScoringInput) -> Dict[str, float]:
    active = _active(state.agents)
    population = len(active) or 1
    wealth = float(np.sum([a.money for a in active])) if active else 0.0
    capacity = sum(
        b.productivity * 100 for b in state.buildings if b.type in _PRODUCTION_BUILDINGS
    )
    gdp = capacity + wealth * 0.1
    workers = [a for a in active if a.role == AgentRole.WORKER]
    economy = state.economy
    previous_supply = (
        state.previous_economy.currency_supply
        if state.previous_economy is not None
        else economy.currency_supply
    )
    inflation = (
        (economy.currency_supply - previous_supply) / previous_supply * 100
        if previous_supply > 0
        else 0.0
    )
    if abs(inflation) < 0.01:
        inflation = 0.0
    employed = sum(1 for a in active if a.workplace)
    return {
        "gdp_total_output": gdp,
        "gdp_per_capita": gdp / population,
        "productivity_per_worker": gdp / len(workers) if workers else 0.0,
        "employment_rate": employed / population * 100,
        "median_income": _median([a.money for a in active]),
        "inflation_rate": inflation,
        "price_index_cpi": 100 + inflation,
        "money_supply": economy.currency_supply,
        "tax_revenue": economy.taxation_level * gdp,
        "production_output": economy.production_output,
    }


def inequality_metrics(state: ScoringInput) -> Dict[str, float]:
    balances = [a.money for a in _active(state.agents)]
    if not balances:
        return {
            "gini_income": 0.0,
            "wealth_concentration_top1": 0.0,
            "poverty_rate": 0.0,
            "social_mobility_index": 50.0,
        }
    data = np.sort(np.asarray(balances, dtype=float))
    total = data.sum()
    gini = gini_coefficient(data)
    top_count = max(1, int(data.size * 0.01))
    top_share = data[-top_count:].sum() / total * 100 if total > 0 else 0.0
    poverty_line = data[data.size // 2] * 0.3
    poverty = float((data < poverty_line).sum()) / data.size * 100
    return {
        "gini_income": gini,
        "wealth_concentration_top1": float(top_share),
        "poverty_rate": poverty,
        "social_mobility_index": 50 + (1 - gini) * 30,
    }


def resource_metrics(state: ScoringInput) -> Dict[str, float]:
    resources = state.economy.resource_distribution
    stocks = np.array(
        [resources.food, resources.energy, resources.materials, resources.technology]
    )
    normalized = float((stocks / max(stocks.max(), 1.0)).mean())
    infrastructure = min(100.0, len(state.buildings) * 2 + 20)
    return {
        "food": resources.food,
        "energy": resources.energy,
        "materials": resources.materials,
        "technology": resources.technology,
        "stockpile_summary": round(normalized * 100),
        "infrastructure_index": infrastructure,
        "supply_chain_health": 70 + normalized * 20,
        "resilience_score": min(100.0, 60 + infrastructure * 0.3),
    }


def governance_metrics(state: ScoringInput) -> Dict[str, float]:
    active_laws = [law for law in state.laws if law.status == LawStatus.ACTIVE]
    changed = sum(1 for law in state.laws if len(law.history) > 1)
    active = _active(state.agents)
    compliant = sum(1 for a in active if a.traits.compliance > 0.5)
    compliance_rate = compliant / len(active) * 100 if active else 100.0
    return {
        "active_law_count": float(len(active_laws)),
        "law_churn_rate": changed / len(state.laws) * 100 if state.laws else 0.0,
        "compliance_rate": compliance_rate,
        "enforcement_cost": len(active_laws) * 100.0,
        "admin_overhead": min(25.0, 5 + len(active_laws) * 0.5),
        "rule_consistency_score": 75 + compliance_rate * 0.15,
    }


def stability_metrics(state: ScoringInput) -> Dict[str, float]:
    active = _active(state.agents)
    compliance = float(np.mean([a.traits.compliance for a in active])) if active else 0.8
    roles = {a.role for a in active}
    return {
        "stability_index": state.stability_index * 100,
        "dissent_index": (1 - compliance) * 100,
        "trust_in_system": compliance * 100,
        "factionalism_index": max(0.0, (len(roles) - 4) * 10.0),
    }


def research_metrics(state: ScoringInput) -> Dict[str, float]:
    nodes = state.research.nodes
    completed = sum(1 for n in nodes if n.status == ResearchStatus.COMPLETED)
    in_progress = sum(1 for n in nodes if n.status == ResearchStatus.IN_PROGRESS)
    researchers = len(
        [a for a in _active(state.agents) if a.role == AgentRole.RESEARCHER]
    )
    total = len(nodes) or 1
    return {
        "research_throughput": researchers * 2 + in_progress * 0.5,
        "breakthrough_rate": completed / total * 10,
        "completed_nodes": float(completed),
        "adoption_rate": min(100.0, 30 + completed * 10),
        "knowledge_diffusion_score": min(100.0, 40 + completed * 5 + researchers * 3),
    }


def evolution_metrics(state: ScoringInput) -> Dict[str, float]:
    active = _active(state.agents)
    if len(active) > 1:
        traits = np.array(
            [
                [
                    a.traits.productivity,
                    a.traits.creativity,
                    a.traits.compliance,
                    a.traits.longevity,
                    a.traits.mutability,
                ]
                for a in active
            ]
        )
        variance = float(traits.var(axis=0).sum())
    else:
        variance = 0.5
    compliance = float(np.mean([a.traits.compliance for a in active])) if active else 0.5
    return {
        "trait_diversity_score": min(100.0, variance * 200),
        "cooperation_ratio": compliance / (1 - compliance + 0.1),
        "emergent_institutions_count": float(len({a.role for a in active})),
        "max_generation": float(max((a.generation for a in active), default=0)),
    }


def ethics_metrics(state: ScoringInput, diversity: float) -> Dict[str, float]:
    blocks = len(state.ethics.blocked_actions)
    return {
        "ethics_blocks_triggered": float(blocks),
        "judicial_overrides": float(len(state.ethics.self_corrections)),
        "harm_proxy_score": 10.0 + blocks * 5,
        "love_equation_score": max(0.0, 90.0 - blocks * 5),
        "monoculture_risk_score": max(0.0, 100 - diversity) * 0.4,
    }


def composite_scores(metrics: Dict[str, Dict[str, float]]) -> Dict[str, float]:
    """三项综合评分，各自为分量的均值，裁剪到 [0, 100] 并取整。"""

    economy = metrics["economy"]
    resources = metrics["resources"]
    stability = metrics["stability"]
    governance = metrics["governance"]
    inequality = metrics["inequality"]
    research = metrics["research"]
    evolution = metrics["evolution"]

    health = [
        economy["gdp_per_capita"] / 20,
        economy["employment_rate"],
        100 - abs(economy["inflation_rate"]) * 10,
        (resources["food"] + resources["energy"] + resources["materials"]) / 300,
        resources["supply_chain_health"],
        resources["resilience_score"],
        stability["stability_index"],
    ]
    legitimacy = [
        stability["trust_in_system"],
        governance["compliance_rate"],
        governance["rule_consistency_score"],
        100 - inequality["gini_income"] * 100,
        inequality["social_mobility_index"],
    ]
    evolution_parts = [
        research["research_throughput"] * 5,
        research["breakthrough_rate"] * 10,
        research["adoption_rate"],
        research["knowledge_diffusion_score"],
        evolution["trait_diversity_score"],
        evolution["emergent_institutions_count"] * 10,
        evolution["cooperation_ratio"] * 50,
    ]

    def _score(parts: List[float]) -> float:
        value = float(np.mean(parts))
        if math.isnan(value):
            return 0.0
        return float(round(max(0.0, min(100.0, value))))

    return {
        "state_health_score": _score(health),
        "legitimacy_score": _score(legitimacy),
        "evolution_score": _score(evolution_parts),
    }


def metric_status(metric_id: str, value: float) -> str:
    definition = METRIC_DEFINITIONS.get(metric_id)
    if definition is None:
        return "neutral"
    _, _, _, higher_is_better, warning, critical = definition
    if higher_is_better:
        if value < critical:
            return "critical"
        if value < warning:
            return "warning"
        return "positive"
    if value > critical:
        return "critical"
    if value > warning:
        return "warning"
    return "positive"


def build_top_metrics(
    values: Dict[str, float], tick: int, previous: Optional[ScoringResult]
) -> List[TopMetric]:
    previous_by_id = {m.id: m for m in previous.top_metrics} if previous else {}
    top: List[TopMetric] = []
    for metric_id, value in values.items():
        name, category, unit, *_ = METRIC_DEFINITIONS[metric_id]
        earlier = previous_by_id.get(metric_id)
        delta = value - earlier.value if earlier else 0.0
        delta_percent = delta / earlier.value * 100 if earlier and earlier.value else 0.0
        history = list(earlier.history) if earlier else []
        history.append(MetricPoint(tick=tick, value=value))
        top.append(
            TopMetric(
                id=metric_id,
                name=name,
                category=category,
                value=value,
                delta=delta,
                delta_percent=delta_percent,
                unit=unit,
                status=metric_status(metric_id, value),
                history=history[-HISTORY_LENGTH:],
            )
        )
    return top


def generate_alerts(
    metrics: Dict[str, Dict[str, float]],
    previous: Optional[ScoringResult],
    tick: int,
) -> List[Alert]:
    alerts: List[Alert] = []

    def _add(kind: str, severity: str, title: str, message: str, related: List[str]) -> None:
        alerts.append(
            Alert(
                id=f"ALT-{tick:06d}-{len(alerts) + 1:02d}",
                type=kind,
                severity=severity,
                title=title,
                message=message,
                tick=tick,
                related_metrics=related,
            )
        )

    economy = metrics["economy"]
    resources = metrics["resources"]
    stability = metrics["stability"]
    population = metrics["demography"]["population_total"]
    blocks = metrics["ethics"]["ethics_blocks_triggered"]

    if economy["inflation_rate"] > 8:
        _add(
            "inflation_spike",
            "critical" if economy["inflation_rate"] > 15 else "warning",
            "INFLATION SPIKE DETECTED",
            f"Inflation rate has reached {economy['inflation_rate']:.1f}%",
            ["inflation_rate", "price_index_cpi"],
        )
    if min(resources["food"], resources["energy"], resources["materials"]) < 500:
        _add(
            "resource_collapse",
            "critical",
            "RESOURCE SHORTAGE",
            "Critical resource levels detected. Supply chain intervention required.",
            ["resource_stockpiles_summary", "supply_chain_health"],
        )
    if previous is not None:
        earlier = previous.metrics.get("demography", {}).get("population_total")
        if earlier and population < earlier * 0.9:
            _add(
                "population_crash",
                "critical",
                "POPULATION DECLINE",
                f"Population decreased by {(1 - population / earlier) * 100:.1f}%",
                ["population_total", "death_rate"],
            )
    if stability["dissent_index"] > 40:
        _add(
            "dissent_rising",
            "critical" if stability["dissent_index"] > 60 else "warning",
            "DISSENT LEVELS ELEVATED",
            f"Dissent index at {stability['dissent_index']:.0f}. "
            "Social stability may be at risk.",
            ["dissent_index", "trust_in_system"],
        )
    earlier_blocks = (
        previous.metrics.get("ethics", {}).get("ethics_blocks_triggered", 0.0)
        if previous is not None
        else 0.0
    )
    if blocks > 0 and blocks > earlier_blocks:
        _add(
            "ethics_override_triggered",
            "warning",
            "ETHICS BLOCK TRIGGERED",
            "The ethical framework has blocked an attempted action.",
            ["ethics_blocks_triggered", "harm_proxy_score"],
        )
    if metrics["ethics"]["monoculture_risk_score"] > 50:
        _add(
            "monoculture_risk",
            "warning",
            "MONOCULTURE RISK",
            "Trait diversity is declining. Monoculture risk: "
            f"{metrics['ethics']['monoculture_risk_score']:.0f}%",
            ["monoculture_risk_score", "trait_diversity_score"],
        )
    if stability["stability_index"] < 50:
        _add(
            "stability_warning",
            "critical" if stability["stability_index"] < 30 else "warning",
            "STABILITY WARNING",
            f"System stability index at {stability['stability_index']:.0f}%",
            ["stability_index", "trust_in_system"],
        )
    return alerts


class BasicScorer:
    """默认评分实现。"""

    def score(self, state: ScoringInput) -> ScoringResult:
        metrics: Dict[str, Dict[str, float]] = {
            "demography": demography_metrics(state),
            "economy": economy_metrics(state),
            "inequality": inequality_metrics(state),
            "resources": resource_metrics(state),
            "governance": governance_metrics(state),
            "stability": stability_metrics(state),
            "research": research_metrics(state),
            "evolution": evolution_metrics(state),
        }
        metrics["ethics"] = ethics_metrics(
            state, metrics["evolution"]["trait_diversity_score"]
        )
        scores = composite_scores(metrics)

        top_values = {
            "population_total": metrics["demography"]["population_total"],
            "state_health_score": scores["state_health_score"],
            "legitimacy_score": scores["legitimacy_score"],
            "stability_index": metrics["stability"]["stability_index"],
            "gdp_per_capita": metrics["economy"]["gdp_per_capita"],
            "inflation_rate": metrics["economy"]["inflation_rate"],
            "gini_income": metrics["inequality"]["gini_income"],
            "resource_stockpiles_summary": float(metrics["resources"]["stockpile_summary"]),
            "research_throughput": metrics["research"]["research_throughput"],
            "ethics_blocks_triggered": metrics["ethics"]["ethics_blocks_triggered"],
        }
        return ScoringResult(
            metrics=metrics,
            scores=scores,
            top_metrics=build_top_metrics(top_values, state.tick, state.previous),
            alerts=generate_alerts(metrics, state.previous, state.tick),
        )


__all__ = [
    "Alert",
    "BasicScorer",
    "METRIC_DEFINITIONS",
    "ScoringInput",
    "ScoringResult",
    "Scorer",
    "TopMetric",
    "composite_scores",
    "gini_coefficient",
]
