from __future__ import annotations

from collections import Counter

from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    population: int,
    ai_tick: bool,
    sources: Counter,
    blended: int,
    resources_collected: int,
    encounters: int,
    duration_ms: float,
) -> TickMetrics:
    return TickMetrics(
        tick=tick,
        population=population,
        ai_tick=ai_tick,
        sampled=sum(sources.values()),
        fresh_decisions=sources.get("oracle", 0),
        reused_decisions=sources.get("cache", 0),
        fallbacks=sources.get("fallback", 0),
        failures=sources.get("failure", 0),
        blended=blended,
        resources_collected=resources_collected,
        encounters=encounters,
        tick_duration_ms=duration_ms,
    )
