"""Turn a raw transcript into a speaker-labelled Transcript."""

import logging

from config.config_loader import PromptsConfig
from debate_council.models import Transcript
from debate_council.providers.base import StructuredLLM
from debate_council.retry import RetryPolicy, with_retry
from debate_council.schemas import TRANSCRIPT_SCHEMA, parse_transcript

logger = logging.getLogger(__name__)


async def format_transcript(
    llm: StructuredLLM,
    raw_transcript: str,
    topic: str,
    model_id: str,
    prompts: PromptsConfig,
    retry: RetryPolicy = RetryPolicy(),
) -> Transcript:
    """Format the raw text with one structured call.

    A result whose segments name an undeclared speaker is treated as a failed
    attempt. There is no local fallback formatting.

    Raises:
        RetryExhausted: If no attempt produced a consistent transcript.
    """
    logger.info("Formatting transcript with %s...", model_id)
    user_prompt = prompts.formatting_user.format(topic=topic, transcript=raw_transcript)

    async def attempt() -> Transcript:
        raw = await llm.evaluate_structured(
            prompts.formatting_system, user_prompt, TRANSCRIPT_SCHEMA, model_id
        )
        return parse_transcript(raw)

    def on_retry(attempt_number: int, error: Exception) -> None:
        logger.warning("Formatting retry %d: %s", attempt_number, error)

    transcript = await with_retry(attempt, retry, on_retry)
    logger.info(
        "Formatted transcript: %d speakers, %d segments",
        len(transcript.speakers),
        len(transcript.segments),
    )
    return transcript
