from __future__ import annotations

import argparse
import asyncio
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.environment import FeatureKind
from ..sim.core.world import World
from ..sim.systems.analytics import coverage
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "ai_tick",
    "sampled",
    "fresh_decisions",
    "reused_decisions",
    "fallbacks",
    "failures",
    "resources_collected",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "ai_tick",
    "sampled",
    "fresh_decisions",
    "reused_decisions",
    "fallbacks",
    "failures",
    "blended",
    "resources_collected",
    "encounters",
    "tick_ms",
    "centroid_x",
    "centroid_y",
    "avg_spread",
    "max_spread",
    "coverage",
    "total_resources",
    "remaining_resources",
]


class SimulatedClock:
    """Millisecond clock advanced explicitly by the headless loop."""

    def __init__(self, start_ms: float = 0.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, delta_ms: float) -> None:
        self.now_ms += delta_ms


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        int(metrics.ai_tick),
        metrics.sampled,
        metrics.fresh_decisions,
        metrics.reused_decisions,
        metrics.fallbacks,
        metrics.failures,
        metrics.resources_collected,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    agents = world.agents
    population = len(agents)
    if population <= 0:
        centroid_x = 0.0
        centroid_y = 0.0
        avg_spread = 0.0
        max_spread = 0.0
    else:
        centroid_x = sum(agent.position.x for agent in agents) / population
        centroid_y = sum(agent.position.y for agent in agents) / population
        spreads = [math.hypot(agent.position.x - centroid_x, agent.position.y - centroid_y) for agent in agents]
        avg_spread = sum(spreads) / population
        max_spread = max(spreads)
    resources = [f for f in world.features if f.kind == FeatureKind.RESOURCE]
    return [
        metrics.tick,
        metrics.population,
        int(metrics.ai_tick),
        metrics.sampled,
        metrics.fresh_decisions,
        metrics.reused_decisions,
        metrics.fallbacks,
        metrics.failures,
        metrics.blended,
        metrics.resources_collected,
        metrics.encounters,
        f"{tick_ms:.3f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
        f"{avg_spread:.4f}",
        f"{max_spread:.4f}",
        f"{coverage(agents, world.config.arena):.4f}",
        sum(agent.resources.total for agent in agents),
        sum(1 for f in resources if not f.collected),
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


async def _run(
    world: World,
    clock: SimulatedClock,
    steps: int,
    writer,
    log_mode: str,
    deterministic_log: bool,
) -> tuple[list[float], list[TickMetrics]]:
    tick_ms_series: list[float] = []
    history: list[TickMetrics] = []
    step_ms = world.config.tick_interval * 1000.0
    for tick in range(steps):
        clock.advance(step_ms)
        metrics = await world.step(tick)
        tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
        tick_ms_series.append(tick_ms)
        history.append(metrics)
        if writer:
            if log_mode == "detailed":
                writer.writerow(_format_detailed_row(world, metrics, tick_ms))
            else:
                writer.writerow(_format_basic_row(metrics, tick_ms))
    return tick_ms_series, history


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 1000,
    ai_enabled: bool = False,
    config_path: Optional[Path] = None,
    live_oracle: bool = False,
) -> World:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if ai_enabled:
        config.swarm.ai_enabled = True
    if not live_oracle:
        config.oracle.offline = True

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    clock = SimulatedClock()
    world = World(config, clock=clock)
    logger.info(
        "headless run steps=%s seed=%s ai_enabled=%s population=%s",
        steps,
        config.seed,
        world.swarm.ai_enabled,
        len(world.agents),
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)
    try:
        tick_ms_series, history = asyncio.run(_run(world, clock, steps, writer, log_mode, deterministic_log))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "ai_enabled": world.swarm.ai_enabled,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "ai_ticks": sum(1 for m in history if m.ai_tick),
            "decisions": {
                "sampled": sum(m.sampled for m in history),
                "fresh": sum(m.fresh_decisions for m in history),
                "reused": sum(m.reused_decisions for m in history),
                "fallbacks": sum(m.fallbacks for m in history),
                "failures": sum(m.failures for m in history),
                "blended": sum(m.blended for m in history),
            },
            "resources_collected": sum(m.resources_collected for m in history),
            "encounters": _summary_stats([float(m.encounters) for m in history]),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail]),
                "encounters": _summary_stats([float(m.encounters) for m in history[tail]]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless flockmind swarm simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=1000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--ai", action="store_true", help="Enable AI-augmented ticks.")
    parser.add_argument(
        "--live-oracle",
        action="store_true",
        help="Query the configured model instead of the offline oracle.",
    )
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        ai_enabled=args.ai,
        config_path=args.config,
        live_oracle=args.live_oracle,
    )


if __name__ == "__main__":
    main()
