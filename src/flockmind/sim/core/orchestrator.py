from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import replace
from enum import Enum
from time import perf_counter
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..ai.context import build_agent_context
from ..ai.service import DecisionService, DecisionSource, continue_decision, wall_clock_ms
from ..systems import collection, metrics as metrics_system
from ..systems.blending import blend_displacement
from ..systems.sensors import build_sensors
from ..systems.steering import compute_steering
from ..types.decision import Decision
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import _clamp_to_arena
from .agent import Agent, SensorSnapshot
from .config import SimulationConfig, SwarmConfig, sanitize_swarm_config
from .environment import EnvironmentFeature
from .rng import DeterministicRng
from .store import WorldStore

logger = logging.getLogger(__name__)


class TickPhase(str, Enum):
    IDLE = "Idle"
    SAMPLING_AI = "SamplingAI"
    AWAITING_DECISIONS = "AwaitingDecisions"
    INTEGRATING = "Integrating"
    COMMITTED = "Committed"


class TickOrchestrator:
    def __init__(
        self,
        store: WorldStore,
        decisions: DecisionService,
        config: SimulationConfig,
        rng: Optional[DeterministicRng] = None,
        clock: Callable[[], float] = wall_clock_ms,
    ):
        self._store = store
        self._decisions = decisions
        self._config = config
        self._rng = rng if rng is not None else DeterministicRng(config.seed)
        self._clock = clock
        self._last_sampling_ms = clock()
        self._lock = asyncio.Lock()
        self._metrics: TickMetrics | None = None
        self.phase = TickPhase.IDLE

    @property
    def store(self) -> WorldStore:
        return self._store

    @property
    def decisions(self) -> DecisionService:
        return self._decisions

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def restart_sampling_clock(self) -> None:
        self._last_sampling_ms = self._clock()
        self._metrics = None

    def should_sample(self, swarm: SwarmConfig, now: float) -> bool:
        return swarm.ai_enabled and now - self._last_sampling_ms >= self._config.sampling_interval_ms

    def select_eligible(self, agents: Sequence[Agent]) -> List[Agent]:
        probability = self._config.follower_sampling_probability
        return [agent for agent in agents if agent.is_leader or self._rng.chance(probability)]

    async def step(self, tick: int) -> TickMetrics:
        async with self._lock:
            try:
                return await self._step(tick)
            finally:
                self.phase = TickPhase.IDLE

    async def _step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        snapshot = self._store.read_agents()
        swarm = sanitize_swarm_config(self._store.read_config())
        features = self._store.read_features()
        arena = self._config.arena
        now = self._clock()

        self.phase = TickPhase.SAMPLING_AI
        decisions: Dict[int, Decision] = {}
        sensed: Dict[int, SensorSnapshot] = {}
        sources: Counter = Counter()
        ai_tick = self.should_sample(swarm, now)
        if ai_tick:
            self._last_sampling_ms = now
            eligible = self.select_eligible(snapshot)
            self.phase = TickPhase.AWAITING_DECISIONS
            decisions, sensed, sources = await self._gather_decisions(eligible, snapshot, features, swarm, now)

        self.phase = TickPhase.INTEGRATING
        next_agents: List[Agent] = []
        blended = 0
        for agent in snapshot:
            force = compute_steering(agent, snapshot, features, swarm, arena)
            decision = decisions.get(agent.id)
            if decision is not None and decision.has_target:
                blended += 1
            displacement = blend_displacement(agent.position, force, decision, swarm.speed)
            next_agents.append(
                replace(
                    agent,
                    position=_clamp_to_arena(agent.position + displacement, arena.width, arena.height),
                    sensors=sensed.get(agent.id, agent.sensors),
                    last_decision=decision if decision is not None else agent.last_decision,
                )
            )

        self.phase = TickPhase.COMMITTED
        collected = collection.collect_resources(next_agents, features, self._store)
        encounters = collection.record_encounters(next_agents, swarm.separation, swarm.memory_retention, now)
        for agent in next_agents:
            if agent.id in sensed:
                collection.remember_sensed_resources(agent, features, swarm.memory_retention, now)
        self._store.commit_agents(next_agents)

        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick=tick,
            population=len(next_agents),
            ai_tick=ai_tick,
            sources=sources,
            blended=blended,
            resources_collected=collected,
            encounters=encounters,
            duration_ms=duration_ms,
        )
        logger.debug(
            "tick=%s ai=%s sampled=%s blended=%s collected=%s",
            tick,
            ai_tick,
            self._metrics.sampled,
            blended,
            collected,
        )
        return self._metrics

    async def _gather_decisions(
        self,
        eligible: Sequence[Agent],
        snapshot: Sequence[Agent],
        features: Sequence[EnvironmentFeature],
        swarm: SwarmConfig,
        now: float,
    ) -> Tuple[Dict[int, Decision], Dict[int, SensorSnapshot], Counter]:
        sensed: Dict[int, SensorSnapshot] = {}
        contexts = []
        for agent in eligible:
            sensors = build_sensors(agent, snapshot, features, swarm, self._config.arena)
            sensed[agent.id] = sensors
            contexts.append(build_agent_context(replace(agent, sensors=sensors), snapshot, swarm.communication_range))

        results = await asyncio.gather(
            *(self._decisions.resolve(context.id, context) for context in contexts),
            return_exceptions=True,
        )

        decisions: Dict[int, Decision] = {}
        sources: Counter = Counter()
        for context, result in zip(contexts, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "decision task failed agent=%s reason=%s: %s", context.id, type(result).__name__, result
                )
                decision, source = continue_decision(now), DecisionSource.FAILURE
            else:
                decision, source = result
            decisions[context.id] = decision
            sources[source.value] += 1
        return decisions, sensed, sources

    def snapshot(self, tick: int) -> Snapshot:
        agents = self._store.read_agents()
        swarm = self._store.read_config()
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(tick, len(agents), False, Counter(), 0, 0, 0, 0.0)
        interval = self._config.tick_interval
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[agent.to_dict() for agent in agents],
            features=[feature.to_dict() for feature in self._store.read_features()],
            world=SnapshotWorld(width=self._config.arena.width, height=self._config.arena.height),
            metadata=SnapshotMetadata(
                seed=self._config.seed,
                tick_interval=interval,
                tick_rate=0.0 if interval <= 0 else 1.0 / interval,
                ai_enabled=swarm.ai_enabled,
                config_version=self._config.config_version,
            ),
        )
