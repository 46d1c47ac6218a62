"""Decision oracle adapters.

An oracle turns an ``AgentContext`` into a raw, JSON-shaped decision. It
reports quota exhaustion with ``OracleRateLimitedError`` and every other
failure with ``OracleError``; parsing and caching are done by the caller.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Iterable, Mapping, Protocol, Union

import openai

from ..core.config import OracleConfig
from .context import AgentContext
from .prompt import SYSTEM_PROMPT, build_prompt

logger = logging.getLogger(__name__)

OracleResponse = Union[Mapping[str, Any], str, None]

_TRUTHY = {"1", "true", "yes", "on"}


class OracleError(Exception):
    pass


class OracleRateLimitedError(OracleError):
    pass


class DecisionParseError(OracleError):
    pass


class DecisionOracle(Protocol):
    async def request_decision(self, context: AgentContext) -> OracleResponse: ...


class OpenAIDecisionOracle:
    def __init__(self, config: OracleConfig, client: Any = None):
        self._config = config
        self._client = client if client is not None else openai.AsyncOpenAI(timeout=config.timeout_seconds)

    async def request_decision(self, context: AgentContext) -> OracleResponse:
        try:
            completion = await self._client.chat.completions.create(
                model=self._config.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(context)},
                ],
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                response_format={"type": "json_object"},
            )
        except openai.RateLimitError as exc:
            raise OracleRateLimitedError(str(exc)) from exc
        except openai.APIStatusError as exc:
            if getattr(exc, "code", None) == "insufficient_quota" or exc.status_code == 429:
                raise OracleRateLimitedError(str(exc)) from exc
            raise OracleError(str(exc)) from exc
        except openai.OpenAIError as exc:
            raise OracleError(str(exc)) from exc
        if not completion.choices:
            return None
        return completion.choices[0].message.content


class OfflineDecisionOracle:
    """Deterministic stand-in used when no external model is reachable."""

    async def request_decision(self, context: AgentContext) -> OracleResponse:
        if context.is_leader:
            return json.dumps({"action": "lead", "reasoning": "Offline stub: leaders keep guiding", "priority": 6})
        leader = context.nearest_leader()
        if leader is not None:
            return json.dumps(
                {
                    "action": "move_towards",
                    "reasoning": "Offline stub: close in on the nearest leader",
                    "target": {"x": leader.x, "y": leader.y},
                    "priority": 6,
                }
            )
        return json.dumps({"action": "align", "reasoning": "Offline stub: match neighbors", "priority": 5})


def _env_flag_enabled(keys: Iterable[str]) -> bool:
    for key in keys:
        value = os.getenv(key)
        if value is None:
            continue
        if value.strip().lower() in _TRUTHY:
            return True
    return False


def offline_requested(config: OracleConfig) -> bool:
    return config.offline or _env_flag_enabled(("FLOCKMIND_OFFLINE", "LLM_OFFLINE"))


def build_oracle(config: OracleConfig) -> DecisionOracle:
    if offline_requested(config):
        return OfflineDecisionOracle()
    if not os.getenv("OPENAI_API_KEY"):
        logger.warning("OPENAI_API_KEY is not set; using the offline decision oracle")
        return OfflineDecisionOracle()
    return OpenAIDecisionOracle(config)
