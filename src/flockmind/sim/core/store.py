from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from pygame.math import Vector2

from .agent import Agent, AgentRole, ResourceType
from .config import SwarmConfig, sanitize_swarm_config
from .environment import EnvironmentFeature, FeatureEffect, FeatureKind, feature_from_dict
from .rng import DeterministicRng

logger = logging.getLogger(__name__)

_RESOURCE_CLUSTER_TYPES = (ResourceType.ENERGY, ResourceType.MATERIAL, ResourceType.DATA)


class WorldStore(Protocol):
    def read_agents(self) -> List[Agent]: ...

    def read_config(self) -> SwarmConfig: ...

    def read_features(self) -> List[EnvironmentFeature]: ...

    def commit_agents(self, agents: Sequence[Agent]) -> None: ...

    def collect_resource(self, feature_id: int, agent_id: int) -> bool: ...


class InMemoryWorldStore:
    def __init__(
        self,
        agents: Optional[Sequence[Agent]] = None,
        config: Optional[SwarmConfig] = None,
        features: Optional[Sequence[EnvironmentFeature]] = None,
    ):
        self._agents: List[Agent] = list(agents or [])
        self._config = sanitize_swarm_config(config or SwarmConfig())
        self._features: Dict[int, EnvironmentFeature] = {f.id: f for f in features or []}
        self._next_feature_id = max(self._features, default=0) + 1

    def read_agents(self) -> List[Agent]:
        return list(self._agents)

    def read_config(self) -> SwarmConfig:
        return self._config

    def read_features(self) -> List[EnvironmentFeature]:
        return list(self._features.values())

    def commit_agents(self, agents: Sequence[Agent]) -> None:
        self._agents = list(agents)

    def replace_config(self, config: SwarmConfig) -> SwarmConfig:
        self._config = sanitize_swarm_config(config)
        return self._config

    def add_feature(self, raw: Mapping[str, Any]) -> EnvironmentFeature:
        feature = feature_from_dict(raw, self._next_feature_id)
        self._features[feature.id] = feature
        self._next_feature_id += 1
        logger.debug(
            "placed %s feature id=%s at (%.0f, %.0f)",
            feature.kind.value,
            feature.id,
            feature.position.x,
            feature.position.y,
        )
        return feature

    def collect_resource(self, feature_id: int, agent_id: int) -> bool:
        feature = self._features.get(feature_id)
        if feature is None:
            return False
        return feature.collect(agent_id)

    def clear(self) -> None:
        self._agents.clear()
        self._features.clear()
        self._next_feature_id = 1


def seed_agents(store: InMemoryWorldStore, rng: DeterministicRng, width: float, height: float) -> None:
    count = store.read_config().population
    agents = [
        Agent(
            id=index + 1,
            position=Vector2(float(int(rng.next_range(0.0, width))), float(int(rng.next_range(0.0, height)))),
            role=AgentRole.LEADER if index == 0 else AgentRole.FOLLOWER,
        )
        for index in range(count)
    ]
    store.commit_agents(agents)


def seed_resources(store: InMemoryWorldStore, rng: DeterministicRng, width: float, height: float) -> None:
    if any(f.kind == FeatureKind.RESOURCE for f in store.read_features()):
        return
    for resource_type in _RESOURCE_CLUSTER_TYPES:
        center_x = 100 + rng.next_float() * max(0.0, width - 200)
        center_y = 100 + rng.next_float() * max(0.0, height - 200)
        for _ in range(3 + rng.next_int(3)):
            store.add_feature(
                {
                    "type": FeatureKind.RESOURCE.value,
                    "x": int(center_x + (rng.next_float() - 0.5) * 100),
                    "y": int(center_y + (rng.next_float() - 0.5) * 100),
                    "radius": 10,
                    "effect": FeatureEffect.COLLECTIBLE.value,
                    "strength": 100,
                    "resourceType": resource_type.value,
                    "value": 10 + rng.next_int(41),
                }
            )


def seed_world(store: InMemoryWorldStore, rng: DeterministicRng, width: float, height: float) -> None:
    seed_agents(store, rng, width, height)
    seed_resources(store, rng, width, height)
