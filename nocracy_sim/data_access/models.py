"""定义社会仿真领域模型的 Pydantic 数据结构。"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GovernanceMode(str, Enum):
    """顶层治理模式枚举。"""

    STANDARD = "STANDARD"
    EMERGENCY = "EMERGENCY"
    TRANSITION = "TRANSITION"
    ETHICAL_OVERRIDE = "ETHICAL_OVERRIDE"


class AgentRole(str, Enum):
    """市民代理人的职业角色。"""

    WORKER = "WORKER"
    RESEARCHER = "RESEARCHER"
    GOVERNOR = "GOVERNOR"
    ENFORCER = "ENFORCER"
    ECONOMIST = "ECONOMIST"
    ARCHITECT = "ARCHITECT"
    MEDIC = "MEDIC"
    MERCHANT = "MERCHANT"


class AgentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DECEASED = "DECEASED"


class BuildingType(str, Enum):
    HOUSE = "HOUSE"
    APARTMENT = "APARTMENT"
    FACTORY = "FACTORY"
    OFFICE = "OFFICE"
    RESEARCH_LAB = "RESEARCH_LAB"
    HOSPITAL = "HOSPITAL"
    GOVERNMENT = "GOVERNMENT"
    SHOP = "SHOP"
    WAREHOUSE = "WAREHOUSE"
    FARM = "FARM"


class LawCategory(str, Enum):
    ECONOMIC = "ECONOMIC"
    SOCIAL = "SOCIAL"
    RESEARCH = "RESEARCH"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    ETHICAL = "ETHICAL"
    EMERGENCY = "EMERGENCY"


class LawStatus(str, Enum):
    """法律状态；``rank`` 给出生命周期中的单调顺序。"""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    DEPRECATED = "DEPRECATED"
    REPEALED = "REPEALED"

    @property
    def rank(self) -> int:
        return _LAW_STATUS_ORDER.index(self)


_LAW_STATUS_ORDER = [
    LawStatus.PENDING,
    LawStatus.ACTIVE,
    LawStatus.DEPRECATED,
    LawStatus.REPEALED,
]


class LawAction(str, Enum):
    CREATED = "CREATED"
    MODIFIED = "MODIFIED"
    DEPRECATED = "DEPRECATED"
    REPEALED = "REPEALED"


class ResearchStatus(str, Enum):
    LOCKED = "LOCKED"
    AVAILABLE = "AVAILABLE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class MarketEventType(str, Enum):
    BOOM = "BOOM"
    RECESSION = "RECESSION"
    INNOVATION = "INNOVATION"
    SHORTAGE = "SHORTAGE"
    INTERVENTION = "INTERVENTION"


class GovernanceAction(str, Enum):
    LAW_CREATED = "LAW_CREATED"
    LAW_MODIFIED = "LAW_MODIFIED"
    LAW_REPEALED = "LAW_REPEALED"
    ECONOMIC_INTERVENTION = "ECONOMIC_INTERVENTION"
    EMERGENCY_ACTION = "EMERGENCY_ACTION"
    RESEARCH_COMPLETED = "RESEARCH_COMPLETED"
    ETHICAL_OVERRIDE = "ETHICAL_OVERRIDE"
    RESOURCE_ALLOCATION = "RESOURCE_ALLOCATION"
    AGENT_CREATED = "AGENT_CREATED"
    AGENT_TERMINATED = "AGENT_TERMINATED"
    BUILDING_CONSTRUCTED = "BUILDING_CONSTRUCTED"
    MODE_CHANGED = "MODE_CHANGED"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class LawImpactType(str, Enum):
    AFFECTED = "AFFECTED"
    BENEFITED = "BENEFITED"
    PENALIZED = "PENALIZED"


class SimulationClock(BaseModel):
    """仿真时钟与顶层治理状态。"""

    tick: int = 0
    timestamp: float = 0.0
    tick_rate_hz: float = 1.0
    is_running: bool = False
    governance_mode: GovernanceMode = GovernanceMode.STANDARD
    stability_index: float = 0.95
    ethical_integrity: float = 1.0


class PopulationSnapshot(BaseModel):
    tick: int
    total: int
    births: int
    deaths: int


class Population(BaseModel):
    """人口聚合指标与滚动历史。"""

    total: int = 0
    birth_rate: float = 0.03
    death_rate: float = 0.005
    mutation_rate: float = 0.05
    history: List[PopulationSnapshot] = Field(default_factory=list)


class Position(BaseModel):
    x: float
    y: float


class Size(BaseModel):
    width: int
    height: int


class AgentTraits(BaseModel):
    """可遗传特质，每项取值 [0, 1]。"""

    productivity: float
    creativity: float
    compliance: float
    longevity: float
    mutability: float


class AgentActivity(BaseModel):
    tick: int
    action: str
    target: Optional[str] = None
    result: str


class LawImpact(BaseModel):
    law_id: str
    impact_type: LawImpactType
    tick: int


class Agent(BaseModel):
    """市民代理人。

    ``id``、``created_at``、``role`` 与 ``parent_ids`` 在创建后不再变化；
    ``activity_log`` 与 ``law_impact`` 只追加。死亡后保留在集合中以供谱系查询。
    """

    id: str
    name: str
    role: AgentRole
    age: int = 0
    money: float
    position: Position
    generation: int = 1
    parent_ids: List[str] = Field(default_factory=list)
    child_ids: List[str] = Field(default_factory=list)
    traits: AgentTraits
    status: AgentStatus = AgentStatus.ACTIVE
    created_at: int
    died_at: Optional[int] = None
    activity_log: List[AgentActivity] = Field(default_factory=list)
    law_impact: List[LawImpact] = Field(default_factory=list)
    workplace: Optional[str] = None
    home: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == AgentStatus.ACTIVE


class Building(BaseModel):
    """城市建筑。除 productivity 外创建后不可变（当前核心也不修改 productivity）。"""

    id: str
    type: BuildingType
    name: str
    position: Position
    size: Size
    built_at: int
    built_by: str
    workers: List[str] = Field(default_factory=list)
    residents: List[str] = Field(default_factory=list)
    level: int = 1
    productivity: float


class ImpactMetrics(BaseModel):
    economic_effect: float = 0.0
    social_stability: float = 0.0
    research_boost: float = 0.0
    population_growth: float = 0.0


class LawHistoryEntry(BaseModel):
    """法律状态变更记录，创建后只读。"""

    model_config = ConfigDict(frozen=True)

    tick: int
    action: LawAction
    reason: str


class Law(BaseModel):
    """法律条文及其状态机。"""

    id: str
    title: str
    description: str
    category: LawCategory
    status: LawStatus = LawStatus.ACTIVE
    generated_by: str
    created_at: int
    modified_at: Optional[int] = None
    repealed_at: Optional[int] = None
    purpose: str
    affected_population_percent: int
    impact_metrics: ImpactMetrics = Field(default_factory=ImpactMetrics)
    is_constitutional: bool = False
    reasoning: str
    history: List[LawHistoryEntry] = Field(default_factory=list)


class ResearchNode(BaseModel):
    id: str
    name: str
    description: str
    status: ResearchStatus = ResearchStatus.LOCKED
    origin_ai: str = ""
    preconditions: List[str] = Field(default_factory=list)
    economy_effect: float = 0.0
    population_effect: float = 0.0
    long_term_projection: str = ""
    discovered_at: Optional[int] = None
    progress: float = 0.0


class ResearchConnection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")


class ResearchTree(BaseModel):
    nodes: List[ResearchNode] = Field(default_factory=list)
    connections: List[ResearchConnection] = Field(default_factory=list)

    def get(self, node_id: str) -> Optional[ResearchNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class BlockedAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    tick: int
    attempted_action: str
    reason: str
    violated_principle: str


class SelfCorrection(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    tick: int
    original_decision: str
    corrected_decision: str
    reason: str


class EthicsFramework(BaseModel):
    """伦理框架：原则固定不变，两类日志只追加。"""

    name: str
    principles: List[str]
    intervention_count: int = 0
    blocked_actions: List[BlockedAction] = Field(default_factory=list)
    self_corrections: List[SelfCorrection] = Field(default_factory=list)


class ResourceDistribution(BaseModel):
    food: float = 0.0
    energy: float = 0.0
    materials: float = 0.0
    technology: float = 0.0


class MarketEvent(BaseModel):
    id: str
    tick: int
    type: MarketEventType
    description: str
    impact: float


class EconomySnapshot(BaseModel):
    tick: int
    currency_supply: float
    production_output: float
    inequality_index: float


class Economy(BaseModel):
    """经济聚合量、资源存量与有界的市场事件日志。"""

    currency_supply: float = 100000.0
    taxation_level: float = 0.15
    production_output: float = 1000.0
    resource_distribution: ResourceDistribution = Field(
        default_factory=ResourceDistribution
    )
    inequality_index: float = 0.25
    market_events: List[MarketEvent] = Field(default_factory=list)
    history: List[EconomySnapshot] = Field(default_factory=list)


class GovernanceLog(BaseModel):
    """治理日志条目，缓冲区按新到旧排列。"""

    id: str
    tick: int
    timestamp: float
    module: str
    action: GovernanceAction
    summary: str
    reasoning: str
    affected_entities: List[str] = Field(default_factory=list)
    severity: Severity = Severity.INFO


class RecentEvent(BaseModel):
    id: str
    tick: int
    timestamp: float
    type: str
    description: str
    impact: str


class HistorySnapshot(BaseModel):
    """周期性冻结的世界摘要，创建后只读。"""

    model_config = ConfigDict(frozen=True)

    id: str
    tick: int
    timestamp: float
    clock: SimulationClock
    population_total: int
    currency_supply: float
    production_output: float
    inequality_index: float
    taxation_level: float
    agent_count: int
    law_count: int
    scores: Optional[Dict[str, float]] = None
    sample_agents: List[Agent] = Field(default_factory=list)
    sample_buildings: List[Building] = Field(default_factory=list)
    recent_events: List[RecentEvent] = Field(default_factory=list)


class TickDelta(BaseModel):
    """每个 tick 向订阅者发送的完整、一致的增量对象。所有字段均为深拷贝。"""

    clock: SimulationClock
    population: Population
    economy: Economy
    agents: List[Agent] = Field(default_factory=list)
    buildings: List[Building] = Field(default_factory=list)
    new_agents: List[Agent] = Field(default_factory=list)
    removed_agent_ids: List[str] = Field(default_factory=list)
    laws: List[Law] = Field(default_factory=list)
    new_laws: List[Law] = Field(default_factory=list)
    logs: List[GovernanceLog] = Field(default_factory=list)
    new_logs: List[GovernanceLog] = Field(default_factory=list)
    new_buildings: List[Building] = Field(default_factory=list)
    research: ResearchTree
    ethics: EthicsFramework
    metrics: Optional[Dict[str, Any]] = None
    top_metrics: Optional[List[Dict[str, Any]]] = None
    alerts: Optional[List[Dict[str, Any]]] = None


class WorldState(BaseModel):
    """引擎持有的权威世界状态；仅由 tick 编排器及其子系统修改。"""

    clock: SimulationClock = Field(default_factory=SimulationClock)
    population: Population = Field(default_factory=Population)
    economy: Economy = Field(default_factory=Economy)
    agents: List[Agent] = Field(default_factory=list)
    buildings: List[Building] = Field(default_factory=list)
    laws: List[Law] = Field(default_factory=list)
    logs: List[GovernanceLog] = Field(default_factory=list)
    research: ResearchTree = Field(default_factory=ResearchTree)
    ethics: EthicsFramework = Field(
        default_factory=lambda: EthicsFramework(name="", principles=[])
    )

    def active_agents(self, role: Optional[AgentRole] = None) -> List[Agent]:
        return [
            agent
            for agent in self.agents
            if agent.status == AgentStatus.ACTIVE
            and (role is None or agent.role == role)
        ]

    def find_agent(self, agent_id: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None
