from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    features: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    seed: int | None
    tick_interval: float
    tick_rate: float
    ai_enabled: bool
    config_version: str
