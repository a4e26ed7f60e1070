"""Judge health checks: ping each council model before starting a judgment."""

import asyncio
import logging

from debate_council.models import CouncilModel
from debate_council.providers.base import StructuredLLM

logger = logging.getLogger(__name__)

_PING_SYSTEM = "You are a connectivity check."
_PING_PROMPT = 'Reply with {"ok": true} only.'
_PING_SCHEMA = {
    "type": "object",
    "properties": {"ok": {"type": "boolean"}},
    "required": ["ok"],
}
_TIMEOUT_SEC = 30.0


async def _check_one(llm: StructuredLLM, judge: CouncilModel) -> tuple[str, bool, str]:
    """Ping a single judge model. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(
            llm.evaluate_structured(_PING_SYSTEM, _PING_PROMPT, _PING_SCHEMA, judge.id),
            timeout=_TIMEOUT_SEC,
        )
        return judge.name, True, ""
    except Exception as exc:
        return judge.name, False, str(exc) or type(exc).__name__


async def run_health_checks(
    llm: StructuredLLM,
    judges: list[CouncilModel],
) -> dict[str, tuple[bool, str]]:
    """Ping all judge models in parallel.

    Returns:
        Dict mapping judge name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(llm, j) for j in judges))
    return {name: (ok, err) for name, ok, err in results}
