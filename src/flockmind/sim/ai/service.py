from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from ..core.config import ArenaConfig
from ..core.rng import DeterministicRng
from ..types.decision import Decision, DecisionAction, DecisionCacheEntry
from .context import AgentContext
from .fallback import rule_based_decision
from .oracle import DecisionOracle, OracleError, OracleRateLimitedError
from .parsing import parse_decision

logger = logging.getLogger(__name__)

DECISION_CACHE_TTL_MS = 5000.0
RATE_LIMIT_REASONING = "Using basic swarm behavior due to API limitations"
FAILURE_REASONING = "Failed to get AI decision, continuing with default behavior"


def wall_clock_ms() -> float:
    return time.time() * 1000.0


class DecisionSource(str, Enum):
    CACHE = "cache"
    ORACLE = "oracle"
    FALLBACK = "fallback"
    FAILURE = "failure"


def continue_decision(timestamp: float, reasoning: str = FAILURE_REASONING) -> Decision:
    return Decision(DecisionAction.CONTINUE, reasoning, timestamp=timestamp)


class DecisionService:
    def __init__(
        self,
        oracle: DecisionOracle,
        arena: ArenaConfig,
        rng: Optional[DeterministicRng] = None,
        clock: Callable[[], float] = wall_clock_ms,
        ttl_ms: float = DECISION_CACHE_TTL_MS,
        timeout_seconds: Optional[float] = None,
    ):
        self._oracle = oracle
        self._arena = arena
        self._rng = rng if rng is not None else DeterministicRng()
        self._clock = clock
        self._ttl_ms = ttl_ms
        self._timeout_seconds = timeout_seconds
        self._cache: Dict[int, DecisionCacheEntry] = {}

    def cached(self, agent_id: int) -> Optional[DecisionCacheEntry]:
        return self._cache.get(agent_id)

    def clear(self) -> None:
        self._cache.clear()

    async def get_decision(self, agent_id: int, context: AgentContext) -> Decision:
        decision, _source = await self.resolve(agent_id, context)
        return decision

    async def resolve(self, agent_id: int, context: AgentContext) -> Tuple[Decision, DecisionSource]:
        now = self._clock()
        entry = self._cache.get(agent_id)
        if entry is not None and now - entry.timestamp < self._ttl_ms:
            return replace(entry.decision, reused=True), DecisionSource.CACHE

        try:
            payload = await self._request(context)
            decision = parse_decision(payload, now)
        except OracleRateLimitedError as exc:
            logger.warning("oracle rate limited agent=%s reason=%s; using rule-based fallback", agent_id, exc)
            decision = replace(
                rule_based_decision(context, self._arena, self._rng, now),
                reasoning=RATE_LIMIT_REASONING,
            )
            self._cache[agent_id] = DecisionCacheEntry(decision, now)
            return decision, DecisionSource.FALLBACK
        except (OracleError, asyncio.TimeoutError) as exc:
            logger.warning("oracle failed agent=%s reason=%s: %s", agent_id, type(exc).__name__, exc)
            return continue_decision(now), DecisionSource.FAILURE
        except Exception as exc:
            logger.warning("oracle raised unexpectedly agent=%s reason=%s: %s", agent_id, type(exc).__name__, exc)
            return continue_decision(now), DecisionSource.FAILURE

        self._cache[agent_id] = DecisionCacheEntry(decision, now)
        return decision, DecisionSource.ORACLE

    async def _request(self, context: AgentContext):
        if self._timeout_seconds is None:
            return await self._oracle.request_decision(context)
        return await asyncio.wait_for(self._oracle.request_decision(context), self._timeout_seconds)
