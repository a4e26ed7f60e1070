"""Content moderation gate run before any expensive processing."""

import logging

from config.config_loader import PromptsConfig
from debate_council.models import ModerationResult
from debate_council.providers.base import StructuredLLM
from debate_council.retry import RetryPolicy, with_retry
from debate_council.schemas import MODERATION_SCHEMA, parse_moderation

logger = logging.getLogger(__name__)

MODERATION_RETRY = RetryPolicy(max_retries=2)
MODERATION_CHAR_LIMIT = 5000


async def moderate_content(
    llm: StructuredLLM,
    transcript: str,
    topic: str,
    model_id: str,
    prompts: PromptsConfig,
    retry: RetryPolicy = MODERATION_RETRY,
    char_limit: int = MODERATION_CHAR_LIMIT,
) -> ModerationResult:
    """Classify the transcript as appropriate or not.

    Only the first `char_limit` characters are sent. A rejection is returned,
    not raised; the pipeline decides what to do with it.

    Raises:
        RetryExhausted: If the moderation call keeps failing.
    """
    logger.info("Running content moderation check...")
    user_prompt = prompts.moderation_user.format(
        topic=topic,
        char_limit=char_limit,
        transcript=transcript[:char_limit],
    )

    async def attempt() -> ModerationResult:
        raw = await llm.evaluate_structured(
            prompts.moderation_system, user_prompt, MODERATION_SCHEMA, model_id
        )
        return parse_moderation(raw)

    def on_retry(attempt_number: int, error: Exception) -> None:
        logger.warning("Moderation retry %d: %s", attempt_number, error)

    result = await with_retry(attempt, retry, on_retry)

    if result.is_appropriate:
        logger.info("Content moderation: APPROVED")
    else:
        logger.info("Content moderation: REJECTED - %s", result.reason)
        if result.flags:
            logger.info("  Flags: %s", ", ".join(result.flags))
    return result
