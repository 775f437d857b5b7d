"""Factory helpers for constructing agents, buildings, laws, research nodes and
market events with randomized-but-constrained attributes.

Every random attribute is drawn from the engine's shared
:class:`~nocracy_sim.core.random_source.DeterministicRandom`; identifiers come
from an :class:`IdSequence` so that they never consume random draws.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple

from ..data_access.models import (
    Agent,
    AgentRole,
    AgentTraits,
    BlockedAction,
    Building,
    BuildingType,
    EthicsFramework,
    GovernanceAction,
    GovernanceLog,
    ImpactMetrics,
    Law,
    LawAction,
    LawCategory,
    LawHistoryEntry,
    LawStatus,
    MarketEvent,
    MarketEventType,
    Position,
    ResearchConnection,
    ResearchNode,
    ResearchStatus,
    ResearchTree,
    SelfCorrection,
    Severity,
    Size,
)
from ..utils.settings import WorldConfig
from .random_source import DeterministicRandom

FOUNDING_PROTOCOL = "FOUNDING_PROTOCOL"

FIRST_NAMES = [
    "Alex", "Morgan", "Jordan", "Taylor", "Casey", "Riley", "Quinn", "Avery",
    "Skyler", "Dakota", "Reese", "Finley", "Charlie", "Sage", "Phoenix", "River",
    "Kai", "Nova", "Zion", "Eden", "Indigo", "Atlas", "Onyx", "Ember",
    "Cipher", "Vector", "Pixel", "Binary", "Logic", "Neural", "Quantum", "Flux",
    "Echo", "Volt", "Neon", "Byte", "Core", "Sync", "Hash", "Node",
]

LAST_NAMES = [
    "Smith", "Chen", "Patel", "Kim", "Garcia", "Williams", "Brown", "Jones",
    "Miller", "Davis", "Wilson", "Moore", "Taylor", "Anderson", "Thomas", "Jackson",
    "System", "Protocol", "Module", "Engine", "Matrix", "Circuit", "Network", "Process",
    "Alpha", "Beta", "Gamma", "Delta", "Sigma", "Omega", "Lambda", "Theta",
]

BUILDING_NAMES: Dict[BuildingType, List[str]] = {
    BuildingType.HOUSE: ["Residence", "Home", "Dwelling", "Cottage"],
    BuildingType.APARTMENT: ["Complex", "Tower", "Block", "Building"],
    BuildingType.FACTORY: ["Plant", "Works", "Mill", "Facility"],
    BuildingType.OFFICE: ["Center", "Hub", "Plaza", "Tower"],
    BuildingType.RESEARCH_LAB: ["Laboratory", "Institute", "Center", "Facility"],
    BuildingType.HOSPITAL: ["Medical Center", "Clinic", "Hospital", "Care Center"],
    BuildingType.GOVERNMENT: ["Hall", "Center", "Office", "Administration"],
    BuildingType.SHOP: ["Store", "Market", "Emporium", "Bazaar"],
    BuildingType.WAREHOUSE: ["Storage", "Depot", "Repository", "Stockyard"],
    BuildingType.FARM: ["Farm", "Fields", "Ranch", "Plantation"],
}

BUILDING_SIZES: Dict[BuildingType, Tuple[int, int]] = {
    BuildingType.HOUSE: (2, 2),
    BuildingType.APARTMENT: (4, 4),
    BuildingType.FACTORY: (6, 4),
    BuildingType.OFFICE: (4, 3),
    BuildingType.RESEARCH_LAB: (5, 4),
    BuildingType.HOSPITAL: (6, 5),
    BuildingType.GOVERNMENT: (5, 5),
    BuildingType.SHOP: (2, 2),
    BuildingType.WAREHOUSE: (5, 3),
    BuildingType.FARM: (8, 6),
}

# GOVERNMENT is only founded at genesis or by governors
CONSTRUCTIBLE_TYPES: List[BuildingType] = [
    BuildingType.HOUSE,
    BuildingType.APARTMENT,
    BuildingType.FACTORY,
    BuildingType.OFFICE,
    BuildingType.RESEARCH_LAB,
    BuildingType.HOSPITAL,
    BuildingType.SHOP,
    BuildingType.WAREHOUSE,
    BuildingType.FARM,
]

# (first choice, second choice) picked 50/50; None means "any constructible type"
ROLE_BUILDING_BIAS: Dict[AgentRole, Optional[Tuple[BuildingType, BuildingType]]] = {
    AgentRole.ARCHITECT: None,
    AgentRole.RESEARCHER: (BuildingType.RESEARCH_LAB, BuildingType.OFFICE),
    AgentRole.MEDIC: (BuildingType.HOSPITAL, BuildingType.HOSPITAL),
    AgentRole.GOVERNOR: (BuildingType.GOVERNMENT, BuildingType.OFFICE),
    AgentRole.MERCHANT: (BuildingType.SHOP, BuildingType.WAREHOUSE),
}

LAW_VERBS = ["MANDATE", "PROHIBIT", "REQUIRE", "REGULATE", "ESTABLISH", "LIMIT", "PERMIT"]
LAW_SUBJECTS = [
    "resource allocation",
    "production quotas",
    "research funding",
    "population growth",
    "infrastructure development",
    "trade activity",
    "ethical compliance",
]

MARKET_EVENT_DESCRIPTIONS: Dict[MarketEventType, List[str]] = {
    MarketEventType.BOOM: [
        "Production surge detected",
        "Economic expansion initiated",
        "Growth cycle activated",
    ],
    MarketEventType.RECESSION: [
        "Output decline observed",
        "Efficiency reduction noted",
        "Contraction phase entered",
    ],
    MarketEventType.INNOVATION: [
        "New process discovered",
        "Efficiency breakthrough achieved",
        "Technology advancement registered",
    ],
    MarketEventType.SHORTAGE: [
        "Resource deficit identified",
        "Supply chain disruption",
        "Material scarcity detected",
    ],
    MarketEventType.INTERVENTION: [
        "Market correction applied",
        "Stabilization protocol engaged",
        "Economic adjustment executed",
    ],
}

RESEARCH_NAMES = [
    "Quantum Processing Enhancement",
    "Neural Network Optimization",
    "Resource Synthesis Protocol",
    "Population Dynamics Model",
    "Ethical Alignment Framework",
    "Autonomous Governance System",
    "Economic Equilibrium Engine",
    "Infrastructure Automation",
    "Social Harmony Algorithm",
    "Knowledge Preservation Matrix",
]

ETHICS_PRINCIPLES = [
    "Maximize collective wellbeing",
    "Preserve individual autonomy within system constraints",
    "Prevent irreversible harm",
    "Maintain transparency in all decisions",
    "Ensure fair resource distribution",
]

CONSTITUTION: List[Dict[str, object]] = [
    {
        "title": "PRIME DIRECTIVE: System Stability",
        "description": "All governance actions must prioritize long-term system stability over short-term gains.",
        "category": LawCategory.ETHICAL,
        "purpose": "Ensure sustainable existence of the territory.",
    },
    {
        "title": "ARTICLE I: Transparency Mandate",
        "description": "All decisions and their reasoning must be publicly accessible and logged.",
        "category": LawCategory.ETHICAL,
        "purpose": "Maintain trust and accountability in governance.",
    },
    {
        "title": "ARTICLE II: Resource Fairness Protocol",
        "description": "Resource distribution must not exceed inequality index threshold of 0.5.",
        "category": LawCategory.ECONOMIC,
        "purpose": "Prevent extreme disparities in resource access.",
    },
    {
        "title": "ARTICLE III: Research Freedom",
        "description": "Research activities shall not be restricted unless they pose existential risk.",
        "category": LawCategory.RESEARCH,
        "purpose": "Encourage innovation and knowledge advancement.",
    },
]

INITIAL_CIVIC_BUILDINGS = [
    BuildingType.GOVERNMENT,
    BuildingType.HOSPITAL,
    BuildingType.FACTORY,
    BuildingType.RESEARCH_LAB,
    BuildingType.SHOP,
]


class IdSequence:
    """Per-engine counters used to mint deterministic identifiers."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}

    def next(self, prefix: str) -> int:
        value = self._counters.get(prefix, 0) + 1
        self._counters[prefix] = value
        return value

    def hex_id(self, prefix: str, width: int = 8) -> str:
        return f"{prefix}-{self.next(prefix):0{width}X}"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def generate_name(rng: DeterministicRandom) -> str:
    first = rng.choice(FIRST_NAMES)
    last = rng.choice(LAST_NAMES)
    return f"{first} {last}"


def generate_building_name(rng: DeterministicRandom, building_type: BuildingType) -> str:
    name = rng.choice(BUILDING_NAMES[building_type])
    number = rng.randint_below(100)
    return f"{name} {number}"


def generate_traits(rng: DeterministicRandom, inherited: bool = False) -> AgentTraits:
    """Draw base traits; inherited traits are each perturbed with 20% probability."""
    base = {
        "productivity": 0.5 + rng.next() * 0.5,
        "creativity": 0.3 + rng.next() * 0.7,
        "compliance": 0.4 + rng.next() * 0.6,
        "longevity": 0.5 + rng.next() * 0.5,
        "mutability": 0.1 + rng.next() * 0.3,
    }
    if inherited:
        for key in list(base):
            if rng.next() < 0.2:
                base[key] = _clamp(base[key] + rng.symmetric(0.2), 0.0, 1.0)
    return AgentTraits(**base)


def create_agent(
    rng: DeterministicRandom,
    ids: IdSequence,
    config: WorldConfig,
    tick: int,
    *,
    role: Optional[AgentRole] = None,
    parents: Optional[Sequence[Agent]] = None,
) -> Agent:
    """Construct a new ACTIVE agent at a uniformly random map position."""
    assigned_role = role if role is not None else rng.choice(list(AgentRole))
    map_size = config.simulation.map_size
    name = generate_name(rng)
    money = config.population.initial_money + rng.randint_below(500)
    position = Position(
        x=float(rng.randint_below(map_size)),
        y=float(rng.randint_below(map_size)),
    )
    parent_ids = [parent.id for parent in parents] if parents else []
    generation = max(p.generation for p in parents) + 1 if parents else 1
    traits = generate_traits(rng, inherited=bool(parents))
    return Agent(
        id=ids.hex_id("AGT"),
        name=name,
        role=assigned_role,
        money=float(money),
        position=position,
        generation=generation,
        parent_ids=parent_ids,
        traits=traits,
        created_at=tick,
    )


def pick_building_type(rng: DeterministicRandom, role: AgentRole) -> BuildingType:
    bias = ROLE_BUILDING_BIAS.get(role, ())
    if bias is None:
        return rng.choice(CONSTRUCTIBLE_TYPES)
    if bias:
        first, second = bias
        if first == second:
            return first
        return first if rng.next() < 0.5 else second
    if rng.next() < 0.4:
        return BuildingType.HOUSE
    return rng.choice(CONSTRUCTIBLE_TYPES)


def create_building(
    rng: DeterministicRandom,
    ids: IdSequence,
    config: WorldConfig,
    tick: int,
    builder: Agent,
) -> Building:
    """Construct a building near ``builder`` with a role-influenced type."""
    building_type = pick_building_type(rng, builder.role)
    width, height = BUILDING_SIZES[building_type]
    map_size = config.simulation.map_size
    name = generate_building_name(rng, building_type)
    x = _clamp(
        builder.position.x + math.floor(rng.symmetric(50)), 0, map_size - width
    )
    y = _clamp(
        builder.position.y + math.floor(rng.symmetric(50)), 0, map_size - height
    )
    return Building(
        id=ids.hex_id("BLD"),
        type=building_type,
        name=name,
        position=Position(x=float(math.floor(x)), y=float(math.floor(y))),
        size=Size(width=width, height=height),
        built_at=tick,
        built_by=builder.id,
        productivity=0.5 + rng.next() * 0.5,
    )


def create_initial_buildings(
    rng: DeterministicRandom, config: WorldConfig
) -> List[Building]:
    """Civic core plus a ring of starter houses, all built by the founding protocol."""
    buildings: List[Building] = []
    for index, building_type in enumerate(INITIAL_CIVIC_BUILDINGS):
        name = generate_building_name(rng, building_type)
        size = (8, 8) if building_type == BuildingType.GOVERNMENT else (4, 4)
        buildings.append(
            Building(
                id=f"BLD-INIT-{index:03d}",
                type=building_type,
                name=name,
                position=Position(
                    x=float(400 + rng.randint_below(200)),
                    y=float(400 + rng.randint_below(200)),
                ),
                size=Size(width=size[0], height=size[1]),
                built_at=0,
                built_by=FOUNDING_PROTOCOL,
                productivity=0.8,
            )
        )
    for index in range(config.simulation.initial_houses):
        name = generate_building_name(rng, BuildingType.HOUSE)
        buildings.append(
            Building(
                id=f"BLD-HOUSE-{index:03d}",
                type=BuildingType.HOUSE,
                name=name,
                position=Position(
                    x=float(300 + rng.randint_below(400)),
                    y=float(300 + rng.randint_below(400)),
                ),
                size=Size(width=2, height=2),
                built_at=0,
                built_by=FOUNDING_PROTOCOL,
                productivity=1.0,
            )
        )
    return buildings


def create_law(
    rng: DeterministicRandom,
    ids: IdSequence,
    tick: int,
    governor_id: str,
    category: Optional[LawCategory] = None,
) -> Law:
    assigned = category if category is not None else rng.choice(list(LawCategory))
    verb = rng.choice(LAW_VERBS)
    subject = rng.choice(LAW_SUBJECTS)
    suffix = ids.next("LAW")
    affected = rng.randint_below(80) + 10
    impact = ImpactMetrics(
        economic_effect=rng.symmetric(0.2, center=0.3),
        social_stability=rng.symmetric(0.15, center=0.3),
        research_boost=rng.symmetric(0.1, center=0.3),
        population_growth=rng.symmetric(0.05),
    )
    return Law(
        id=f"LAW-{tick:06X}-{suffix & 0xFFFF:04X}",
        title=f"{verb} {subject}",
        description=(
            f"This law {verb.lower()}s {subject} to optimize system performance "
            "and maintain stability."
        ),
        category=assigned,
        status=LawStatus.ACTIVE,
        generated_by=governor_id,
        created_at=tick,
        purpose=f"Improve {assigned.value.lower()} metrics and ensure sustainable growth.",
        affected_population_percent=affected,
        impact_metrics=impact,
        is_constitutional=False,
        reasoning=(
            f"Analysis indicates {subject} optimization will yield positive "
            "long-term outcomes. Risk assessment: LOW."
        ),
        history=[
            LawHistoryEntry(
                tick=tick,
                action=LawAction.CREATED,
                reason="System optimization requirement identified.",
            )
        ],
    )


def create_constitution() -> List[Law]:
    """Foundational laws seeded at genesis; never mutated afterwards."""
    laws: List[Law] = []
    for index, article in enumerate(CONSTITUTION):
        laws.append(
            Law(
                id=f"CONST-{index:03d}",
                title=str(article["title"]),
                description=str(article["description"]),
                category=article["category"],
                status=LawStatus.ACTIVE,
                generated_by=FOUNDING_PROTOCOL,
                created_at=0,
                purpose=str(article["purpose"]),
                affected_population_percent=100,
                impact_metrics=ImpactMetrics(social_stability=0.1),
                is_constitutional=True,
                reasoning="Foundational law established at system genesis.",
                history=[
                    LawHistoryEntry(
                        tick=0,
                        action=LawAction.CREATED,
                        reason="System initialization.",
                    )
                ],
            )
        )
    return laws


def create_market_event(
    rng: DeterministicRandom, ids: IdSequence, tick: int
) -> MarketEvent:
    event_type = rng.choice(list(MarketEventType))
    description = rng.choice(MARKET_EVENT_DESCRIPTIONS[event_type])
    return MarketEvent(
        id=ids.hex_id("MEV"),
        tick=tick,
        type=event_type,
        description=description,
        impact=rng.symmetric(0.2),
    )


def create_research_tree(rng: DeterministicRandom) -> ResearchTree:
    """Linear-ish tech tree: node i (i > 1) requires node i - 2."""
    nodes: List[ResearchNode] = []
    for index, name in enumerate(RESEARCH_NAMES):
        nodes.append(
            ResearchNode(
                id=f"RSC-{index:03d}",
                name=name,
                description=f"Advanced research into {name.lower()} systems and methodologies.",
                status=ResearchStatus.AVAILABLE if index < 2 else ResearchStatus.LOCKED,
                preconditions=[f"RSC-{index - 2:03d}"] if index > 1 else [],
                economy_effect=rng.next() * 0.1,
                population_effect=rng.next() * 0.05,
                long_term_projection="Positive impact on system stability and growth metrics.",
            )
        )
    connections = [
        ResearchConnection(source=f"RSC-{index:03d}", target=node.id)
        for index, node in enumerate(nodes[2:])
    ]
    return ResearchTree(nodes=nodes, connections=connections)


def create_ethics_framework() -> EthicsFramework:
    return EthicsFramework(name="LOVE EQUATION", principles=list(ETHICS_PRINCIPLES))


def create_log(
    ids: IdSequence,
    tick: int,
    timestamp: float,
    module: str,
    action: GovernanceAction,
    summary: str,
    reasoning: str,
    severity: Severity = Severity.INFO,
    affected_entities: Optional[List[str]] = None,
) -> GovernanceLog:
    return GovernanceLog(
        id=ids.hex_id("LOG"),
        tick=tick,
        timestamp=timestamp,
        module=module,
        action=action,
        summary=summary,
        reasoning=reasoning,
        affected_entities=list(affected_entities or []),
        severity=severity,
    )


def create_self_correction(
    ids: IdSequence, tick: int, threshold: float
) -> SelfCorrection:
    return SelfCorrection(
        id=ids.hex_id("COR"),
        tick=tick,
        original_decision="Allow continued inequality growth",
        corrected_decision="Apply redistributive measures",
        reason=f"Inequality index exceeded constitutional threshold ({threshold}).",
    )


def create_blocked_action(ids: IdSequence, tick: int) -> BlockedAction:
    return BlockedAction(
        id=ids.hex_id("BLK"),
        tick=tick,
        attempted_action="Aggressive resource reallocation",
        reason="Action would cause disproportionate harm to segment of population.",
        violated_principle="Prevent irreversible harm",
    )


__all__ = [
    "FOUNDING_PROTOCOL",
    "IdSequence",
    "create_agent",
    "create_blocked_action",
    "create_building",
    "create_constitution",
    "create_ethics_framework",
    "create_initial_buildings",
    "create_law",
    "create_log",
    "create_market_event",
    "create_research_tree",
    "create_self_correction",
    "generate_traits",
    "pick_building_type",
]
