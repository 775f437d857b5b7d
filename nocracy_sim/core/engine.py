"""Tick orchestrator: owns the authoritative world state and advances it.

The engine is the only component that mutates world state. Each call to
:meth:`SimulationEngine.tick` runs every subsystem synchronously in a fixed
order, refreshes the rolling histories and the stability index, optionally
asks the scoring collaborator for metrics, records a periodic snapshot and
finally emits one deep-copied :class:`TickDelta` to every subscriber.

Wall-clock driving lives in :mod:`nocracy_sim.core.scheduler`; notifications are
dispatched fire-and-forget through :class:`NotificationDispatcher` so that a slow
or failing chat channel never affects a tick.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from ..data_access.models import (
    Agent,
    Building,
    Economy,
    EconomySnapshot,
    EthicsFramework,
    GovernanceAction,
    GovernanceLog,
    HistorySnapshot,
    Law,
    Population,
    PopulationSnapshot,
    RecentEvent,
    ResearchTree,
    ResourceDistribution,
    Severity,
    SimulationClock,
    TickDelta,
    WorldState,
)
from ..logic_modules import (
    TickContext,
    process_aging_and_pay,
    process_births,
    process_construction,
    process_deaths,
    process_economy,
    process_ethics,
    process_governance,
    process_movement,
    process_research,
    update_stability,
)
from ..metrics.calculator import Scorer, ScoringInput, ScoringResult
from ..notifications.notifier import NotificationDispatcher, Notifier
from ..utils.settings import WorldConfig, get_world_config
from .entity_factory import (
    FOUNDING_PROTOCOL,
    IdSequence,
    create_agent,
    create_constitution,
    create_ethics_framework,
    create_initial_buildings,
    create_log,
    create_research_tree,
)
from .history import SnapshotManager, snapshot_id_for_tick
from .random_source import DeterministicRandom
from .scheduler import TickScheduler, clamp_tick_rate

logger = logging.getLogger(__name__)

TickListener = Callable[[TickDelta], None]

SNAPSHOT_SAMPLE_SIZE = 20
SNAPSHOT_RECENT_EVENTS = 10
ALERT_LIMIT = 100


class TickInProgressError(RuntimeError):
    def __init__(self, tick: int) -> None:
        super().__init__(f"Tick {tick} is still in progress; re-entrant tick rejected.")
        self.tick = tick


class AgentNotFoundError(KeyError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent {agent_id} not found")
        self.agent_id = agent_id


def _event_impact(severity: Severity) -> str:
    if severity in (Severity.WARNING, Severity.CRITICAL):
        return "negative"
    return "neutral"


class SimulationEngine:
    """Deterministic, single-world society simulation."""

    def __init__(
        self,
        config: Optional[WorldConfig] = None,
        *,
        seed: Optional[int] = None,
        notifier: Optional[Notifier] = None,
        scorer: Optional[Scorer] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config if config is not None else get_world_config()
        self._seed = seed if seed is not None else self.config.simulation.seed
        self._clock = clock
        self._dispatcher = NotificationDispatcher(notifier)
        self._scorer = scorer
        self._listeners: List[TickListener] = []
        self._snapshots = SnapshotManager(self.config.simulation.snapshot_capacity)
        self._scheduler = TickScheduler(self.tick, self.config.simulation.tick_rate_hz)
        self._in_tick = False
        self._bootstrap()

    # ------------------------------------------------------------------
    # genesis
    # ------------------------------------------------------------------
    def _bootstrap(self) -> None:
        self._rng = DeterministicRandom(self._seed)
        self._ids = IdSequence()
        self._scoring: Optional[ScoringResult] = None
        self._previous_economy: Optional[Economy] = None
        self._alerts: List[Dict[str, Any]] = []
        self._world = self._genesis()

    def _genesis(self) -> WorldState:
        cfg = self.config
        now = self._clock()
        world = WorldState(
            clock=SimulationClock(
                timestamp=now,
                tick_rate_hz=clamp_tick_rate(cfg.simulation.tick_rate_hz),
            ),
            population=Population(
                birth_rate=cfg.population.birth_rate,
                death_rate=cfg.population.death_rate,
            ),
            economy=Economy(
                currency_supply=cfg.economy.initial_currency_supply,
                taxation_level=cfg.economy.initial_taxation_level,
                production_output=cfg.economy.initial_production_output,
                inequality_index=cfg.economy.initial_inequality_index,
                resource_distribution=ResourceDistribution(
                    food=cfg.economy.initial_food,
                    energy=cfg.economy.initial_energy,
                    materials=cfg.economy.initial_materials,
                    technology=cfg.economy.initial_technology,
                ),
            ),
            research=create_research_tree(self._rng),
            ethics=create_ethics_framework(),
        )

        for _ in range(cfg.simulation.initial_population):
            world.agents.append(create_agent(self._rng, self._ids, cfg, 0))
        world.population.total = len(world.agents)
        world.logs.append(
            create_log(
                self._ids,
                0,
                now,
                "GENESIS_MODULE",
                GovernanceAction.AGENT_CREATED,
                f"Population initialized: {cfg.simulation.initial_population} agents",
                "Initial population seeded according to founding parameters.",
            )
        )

        world.laws.extend(create_constitution())
        world.logs.insert(
            0,
            create_log(
                self._ids,
                0,
                now,
                FOUNDING_PROTOCOL,
                GovernanceAction.LAW_CREATED,
                f"Constitution established: {len(world.laws)} foundational laws",
                "Core governance framework initialized.",
            )
        )

        world.buildings.extend(create_initial_buildings(self._rng, cfg))
        logger.info(
            "World genesis complete: seed=%s agents=%d buildings=%d",
            self._seed,
            len(world.agents),
            len(world.buildings),
        )
        return world

    # ------------------------------------------------------------------
    # tick
    # ------------------------------------------------------------------
    def tick(self) -> TickDelta:
        """Advance the world by exactly one tick and return the emitted delta."""

        if self._in_tick:
            raise TickInProgressError(self._world.clock.tick)
        self._in_tick = True
        started = time.perf_counter()
        try:
            delta = self._advance()
            self._emit(delta)
        finally:
            self._in_tick = False
        logger.debug(
            "Tick %s completed in %.2f ms",
            delta.clock.tick,
            (time.perf_counter() - started) * 1000,
        )
        return delta

    def _advance(self) -> TickDelta:
        world = self._world
        cfg = self.config
        world.clock.tick += 1
        world.clock.timestamp = self._clock()
        ctx = TickContext(
            world=world,
            rng=self._rng,
            ids=self._ids,
            config=cfg,
            timestamp=world.clock.timestamp,
            dispatcher=self._dispatcher,
        )

        process_movement(ctx)
        born = process_births(ctx)
        died = process_deaths(ctx)
        process_aging_and_pay(ctx)
        process_construction(ctx)
        process_economy(ctx)
        process_governance(ctx)
        process_research(ctx)
        process_ethics(ctx)

        limit = cfg.simulation.history_limit
        world.population.total = len(world.active_agents())
        world.population.history.append(
            PopulationSnapshot(
                tick=world.clock.tick,
                total=world.population.total,
                births=len(born),
                deaths=len(died),
            )
        )
        world.population.history = world.population.history[-limit:]
        world.economy.history.append(
            EconomySnapshot(
                tick=world.clock.tick,
                currency_supply=world.economy.currency_supply,
                production_output=world.economy.production_output,
                inequality_index=world.economy.inequality_index,
            )
        )
        world.economy.history = world.economy.history[-limit:]

        update_stability(ctx)
        world.logs = (ctx.new_logs + world.logs)[: cfg.simulation.log_limit]

        self._score()
        if world.clock.tick % cfg.simulation.snapshot_interval == 0:
            self._snapshots.record(self._build_snapshot())

        return self._build_delta(ctx)

    def _score(self) -> None:
        world = self._world
        if self._scorer is None:
            return
        try:
            result = self._scorer.score(
                ScoringInput(
                    tick=world.clock.tick,
                    stability_index=world.clock.stability_index,
                    agents=[a.model_copy(deep=True) for a in world.agents],
                    buildings=[b.model_copy(deep=True) for b in world.buildings],
                    laws=[law.model_copy(deep=True) for law in world.laws],
                    economy=world.economy.model_copy(deep=True),
                    research=world.research.model_copy(deep=True),
                    ethics=world.ethics.model_copy(deep=True),
                    previous_economy=self._previous_economy,
                    previous=self._scoring,
                )
            )
        except Exception:
            logger.exception("Scorer failed at tick %s", world.clock.tick)
            self._scoring = None
        else:
            self._scoring = result
            fresh = [alert.model_dump(mode="json") for alert in result.alerts]
            pending = [a for a in self._alerts if not a.get("resolved")]
            self._alerts = (fresh + pending)[:ALERT_LIMIT]
        self._previous_economy = world.economy.model_copy(deep=True)

    def _build_snapshot(self) -> HistorySnapshot:
        world = self._world
        active = world.active_agents()
        return HistorySnapshot(
            id=snapshot_id_for_tick(world.clock.tick),
            tick=world.clock.tick,
            timestamp=world.clock.timestamp,
            clock=world.clock.model_copy(deep=True),
            population_total=world.population.total,
            currency_supply=world.economy.currency_supply,
            production_output=world.economy.production_output,
            inequality_index=world.economy.inequality_index,
            taxation_level=world.economy.taxation_level,
            agent_count=len(active),
            law_count=len(world.laws),
            scores=dict(self._scoring.scores) if self._scoring is not None else None,
            sample_agents=[a.model_copy(deep=True) for a in active[:SNAPSHOT_SAMPLE_SIZE]],
            sample_buildings=[
                b.model_copy(deep=True) for b in world.buildings[:SNAPSHOT_SAMPLE_SIZE]
            ],
            recent_events=[
                RecentEvent(
                    id=log.id,
                    tick=log.tick,
                    timestamp=log.timestamp,
                    type=log.action.value,
                    description=log.summary,
                    impact=_event_impact(log.severity),
                )
                for log in world.logs[:SNAPSHOT_RECENT_EVENTS]
            ],
        )

    def _scoring_fields(self) -> Dict[str, Any]:
        if self._scoring is None:
            return {"metrics": None, "top_metrics": None, "alerts": None}
        return {
            "metrics": self._scoring.model_dump(mode="json")["metrics"]
            | {"scores": dict(self._scoring.scores)},
            "top_metrics": [m.model_dump(mode="json") for m in self._scoring.top_metrics],
            "alerts": [dict(a) for a in self._alerts],
        }

    def _build_delta(self, ctx: Optional[TickContext] = None) -> TickDelta:
        world = self._world
        payload: Dict[str, Any] = {
            "clock": world.clock,
            "population": world.population,
            "economy": world.economy,
            "agents": world.agents,
            "buildings": world.buildings,
            "laws": world.laws,
            "logs": world.logs,
            "research": world.research,
            "ethics": world.ethics,
        }
        if ctx is not None:
            payload.update(
                new_agents=ctx.new_agents,
                removed_agent_ids=ctx.removed_agent_ids,
                new_laws=ctx.new_laws,
                new_logs=ctx.new_logs,
                new_buildings=ctx.new_buildings,
            )
        payload.update(self._scoring_fields())
        return TickDelta(**payload).model_copy(deep=True)

    def _emit(self, delta: TickDelta) -> None:
        for listener in list(self._listeners):
            try:
                listener(delta)
            except Exception:
                logger.exception("Tick subscriber %r failed", listener)

    # ------------------------------------------------------------------
    # control surface
    # ------------------------------------------------------------------
    def subscribe(self, listener: TickListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _unsubscribe

    @property
    def is_running(self) -> bool:
        return self._scheduler.running

    @property
    def tick_rate(self) -> float:
        return self._world.clock.tick_rate_hz

    def start(self) -> bool:
        """Start wall-clock ticking on the running event loop. Idempotent."""

        started = self._scheduler.start()
        self._world.clock.is_running = True
        if started:
            logger.info("Simulation started at tick %s", self._world.clock.tick)
        return started

    async def stop(self) -> bool:
        """Stop wall-clock ticking and wait for the scheduler task to exit."""

        stopped = await self._scheduler.stop()
        self._world.clock.is_running = False
        if stopped:
            logger.info("Simulation stopped at tick %s", self._world.clock.tick)
        return stopped

    def set_tick_rate(self, rate: float) -> float:
        """Clamp ``rate`` to [0.1, 10] Hz and apply it to the running schedule."""

        applied = self._scheduler.set_rate(rate)
        self._world.clock.tick_rate_hz = applied
        logger.info("Tick rate set to %.2f Hz", applied)
        return applied

    async def reset(self, seed: Optional[int] = None) -> None:
        """Stop ticking and rebuild the world from genesis."""

        await self.stop()
        if seed is not None:
            self._seed = seed
        self._snapshots.clear()
        self._bootstrap()
        self._scheduler.set_rate(self._world.clock.tick_rate_hz)
        logger.info("Simulation reset with seed %s", self._seed)

    async def aclose(self) -> None:
        await self.stop()
        await self._dispatcher.aclose()

    # ------------------------------------------------------------------
    # read accessors (deep copies; callers never hold live state)
    # ------------------------------------------------------------------
    @property
    def seed(self) -> int:
        return self._seed

    @property
    def clock(self) -> SimulationClock:
        return self._world.clock.model_copy(deep=True)

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def world(self) -> WorldState:
        """Live world state. Intended for tests and trusted in-process tooling."""
        return self._world

    def get_full_state(self) -> TickDelta:
        return self._build_delta()

    def get_agents(self) -> List[Agent]:
        return [a.model_copy(deep=True) for a in self._world.agents]

    def get_agent(self, agent_id: str) -> Agent:
        agent = self._world.find_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent.model_copy(deep=True)

    def get_buildings(self) -> List[Building]:
        return [b.model_copy(deep=True) for b in self._world.buildings]

    def get_laws(self) -> List[Law]:
        return [law.model_copy(deep=True) for law in self._world.laws]

    def get_logs(self) -> List[GovernanceLog]:
        return [log.model_copy(deep=True) for log in self._world.logs]

    def get_research(self) -> ResearchTree:
        return self._world.research.model_copy(deep=True)

    def get_ethics(self) -> EthicsFramework:
        return self._world.ethics.model_copy(deep=True)

    def get_scoring(self) -> Optional[ScoringResult]:
        return self._scoring.model_copy(deep=True) if self._scoring is not None else None

    def get_alerts(self) -> List[Dict[str, Any]]:
        return [dict(a) for a in self._alerts]

    def resolve_alert(self, alert_id: str) -> bool:
        for alert in self._alerts:
            if alert.get("id") == alert_id:
                alert["resolved"] = True
                return True
        return False

    def get_snapshots(self) -> List[HistorySnapshot]:
        return [s.model_copy(deep=True) for s in self._snapshots.list()]

    def get_snapshot(self, snapshot_id: str) -> HistorySnapshot:
        return self._snapshots.get(snapshot_id).model_copy(deep=True)

    def get_snapshots_by_range(self, start_tick: int, end_tick: int) -> List[HistorySnapshot]:
        return [s.model_copy(deep=True) for s in self._snapshots.range(start_tick, end_tick)]

    def export_snapshot(self) -> str:
        """Serialize the full world state to an indented JSON document."""

        world = self._world
        document = {
            "tick": world.clock.tick,
            "timestamp": self._clock(),
            "seed": self._seed,
            "simulation": world.clock.model_dump(mode="json"),
            "population": world.population.model_dump(mode="json"),
            "economy": world.economy.model_dump(mode="json"),
            "agents": [a.model_dump(mode="json") for a in world.agents],
            "buildings": [b.model_dump(mode="json") for b in world.buildings],
            "laws": [law.model_dump(mode="json") for law in world.laws],
            "research": world.research.model_dump(mode="json", by_alias=True),
            "ethics": world.ethics.model_dump(mode="json"),
        }
        return json.dumps(document, indent=2, ensure_ascii=False)


__all__ = [
    "AgentNotFoundError",
    "SimulationEngine",
    "TickInProgressError",
    "TickListener",
]
