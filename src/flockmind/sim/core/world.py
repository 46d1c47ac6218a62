from __future__ import annotations

from typing import Callable, List, Optional

from ..ai.oracle import DecisionOracle, build_oracle
from ..ai.service import DecisionService, wall_clock_ms
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot
from .agent import Agent
from .config import SimulationConfig, SwarmConfig
from .environment import EnvironmentFeature
from .orchestrator import TickOrchestrator
from .rng import DeterministicRng
from .store import InMemoryWorldStore, seed_world

_SAMPLING_RNG_SALT = 0x5A3B1E5EED0F0C4B
_FALLBACK_RNG_SALT = 0xFA11BAC4C0DEF00D


def _derive_stream_seed(seed: Optional[int], salt: int) -> Optional[int]:
    if seed is None:
        return None
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF


class World:
    def __init__(
        self,
        config: SimulationConfig,
        oracle: Optional[DecisionOracle] = None,
        clock: Callable[[], float] = wall_clock_ms,
    ):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._sampling_rng = DeterministicRng(_derive_stream_seed(config.seed, _SAMPLING_RNG_SALT))
        self._fallback_rng = DeterministicRng(_derive_stream_seed(config.seed, _FALLBACK_RNG_SALT))
        self._store = InMemoryWorldStore(config=config.swarm)
        self._decisions = DecisionService(
            oracle if oracle is not None else build_oracle(config.oracle),
            config.arena,
            rng=self._fallback_rng,
            clock=clock,
            ttl_ms=config.oracle.cache_ttl_ms,
            timeout_seconds=config.oracle.timeout_seconds,
        )
        self._orchestrator = TickOrchestrator(
            self._store, self._decisions, config, rng=self._sampling_rng, clock=clock
        )
        self._bootstrap_population()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def store(self) -> InMemoryWorldStore:
        return self._store

    @property
    def decisions(self) -> DecisionService:
        return self._decisions

    @property
    def orchestrator(self) -> TickOrchestrator:
        return self._orchestrator

    @property
    def agents(self) -> List[Agent]:
        return self._store.read_agents()

    @property
    def features(self) -> List[EnvironmentFeature]:
        return self._store.read_features()

    @property
    def swarm(self) -> SwarmConfig:
        return self._store.read_config()

    @property
    def metrics(self) -> TickMetrics | None:
        return self._orchestrator.metrics

    def apply_swarm_config(self, swarm: SwarmConfig) -> SwarmConfig:
        return self._store.replace_config(swarm)

    def reset(self) -> None:
        self._rng.reset()
        self._sampling_rng.reset()
        self._fallback_rng.reset()
        self._store.clear()
        self._decisions.clear()
        self._orchestrator.restart_sampling_clock()
        self._bootstrap_population()

    async def step(self, tick: int) -> TickMetrics:
        return await self._orchestrator.step(tick)

    def snapshot(self, tick: int) -> Snapshot:
        return self._orchestrator.snapshot(tick)

    def _bootstrap_population(self) -> None:
        arena = self._config.arena
        seed_world(self._store, self._rng, arena.width, arena.height)
