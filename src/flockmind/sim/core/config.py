from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


class ConfigError(ValueError):
    pass


@dataclass
class SwarmConfig:
    population: int = 20
    speed: float = 2.0
    cohesion: float = 50.0
    separation: float = 30.0
    alignment: float = 100.0
    ai_enabled: bool = False
    decision_interval: int = 1000
    sensor_range: float = 100.0
    boundary_force: float = 50.0
    obstacle_avoidance: float = 70.0
    leader_influence: float = 70.0
    exploration_weight: float = 50.0
    communication_range: float = 100.0
    goal_orientation: float = 50.0
    memory_retention: int = 5
    resource_priority: float = 60.0
    sharing_enabled: bool = True


# Declared domain of every numeric SwarmConfig field.
SWARM_LIMITS: Dict[str, tuple[float, float]] = {
    "population": (10, 100),
    "speed": (1.0, 5.0),
    "cohesion": (0.0, 100.0),
    "separation": (0.0, 100.0),
    "alignment": (0.0, 100.0),
    "decision_interval": (500, 5000),
    "sensor_range": (10.0, 300.0),
    "boundary_force": (0.0, 100.0),
    "obstacle_avoidance": (0.0, 100.0),
    "leader_influence": (0.0, 100.0),
    "exploration_weight": (0.0, 100.0),
    "communication_range": (10.0, 300.0),
    "goal_orientation": (0.0, 100.0),
    "memory_retention": (1, 20),
    "resource_priority": (0.0, 100.0),
}

_INT_FIELDS = {"population", "decision_interval", "memory_retention"}

_CAMEL_ALIASES = {
    "agentCount": "population",
    "aiEnabled": "ai_enabled",
    "decisionInterval": "decision_interval",
    "sensorRange": "sensor_range",
    "boundaryForce": "boundary_force",
    "obstacleAvoidance": "obstacle_avoidance",
    "leaderInfluence": "leader_influence",
    "explorationWeight": "exploration_weight",
    "communicationRange": "communication_range",
    "goalOrientation": "goal_orientation",
    "memoryRetention": "memory_retention",
    "resourcePriority": "resource_priority",
    "sharingEnabled": "sharing_enabled",
}


@dataclass
class ArenaConfig:
    width: float = 800.0
    height: float = 600.0
    boundary_margin: float = 50.0

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2.0, self.height / 2.0


@dataclass
class OracleConfig:
    model: str = "gpt-3.5-turbo"
    max_tokens: int = 150
    temperature: float = 0.7
    timeout_seconds: float = 10.0
    cache_ttl_ms: float = 5000.0
    offline: bool = False


@dataclass
class SimulationConfig:
    seed: Optional[int] = 42
    tick_interval: float = 1.0 / 30.0
    sampling_interval_ms: float = 5000.0
    follower_sampling_probability: float = 0.2
    config_version: str = "v1"
    arena: ArenaConfig = field(default_factory=ArenaConfig)
    swarm: SwarmConfig = field(default_factory=SwarmConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def sanitize_swarm_config(config: SwarmConfig) -> SwarmConfig:
    defaults = SwarmConfig()
    updates: Dict[str, Any] = {}
    for name, (low, high) in SWARM_LIMITS.items():
        value = getattr(config, name)
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            number = float(getattr(defaults, name))
        if not math.isfinite(number):
            number = float(getattr(defaults, name))
        number = max(low, min(high, number))
        updates[name] = int(round(number)) if name in _INT_FIELDS else number
    updates["ai_enabled"] = bool(config.ai_enabled)
    updates["sharing_enabled"] = bool(config.sharing_enabled)
    return replace(config, **updates)


def swarm_config_from_dict(raw: Mapping[str, Any], base: SwarmConfig | None = None) -> SwarmConfig:
    known = {f.name for f in fields(SwarmConfig)}
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if key == "id":
            continue
        name = _CAMEL_ALIASES.get(key, key)
        if name not in known:
            raise ConfigError(f"Unknown swarm config field: {key}")
        if name in ("ai_enabled", "sharing_enabled"):
            if not isinstance(value, bool):
                raise ConfigError(f"{key} must be a boolean")
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{key} must be a number")
        values[name] = value
    return sanitize_swarm_config(replace(base or SwarmConfig(), **values))


def swarm_config_to_dict(config: SwarmConfig) -> Dict[str, Any]:
    return {f.name: getattr(config, f.name) for f in fields(SwarmConfig)}


def load_config(raw: dict) -> SimulationConfig:
    arena = ArenaConfig(**raw.get("arena", {}))
    oracle = OracleConfig(**raw.get("oracle", {}))
    swarm = swarm_config_from_dict(raw.get("swarm", {}))
    sim_values = {k: v for k, v in raw.items() if k not in {"arena", "oracle", "swarm"}}
    return SimulationConfig(arena=arena, swarm=swarm, oracle=oracle, **sim_values)
