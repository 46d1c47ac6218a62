from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    ai_tick: bool
    sampled: int
    fresh_decisions: int
    reused_decisions: int
    fallbacks: int
    failures: int
    blended: int
    resources_collected: int
    encounters: int
    tick_duration_ms: float = 0.0
