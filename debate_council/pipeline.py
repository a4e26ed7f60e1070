"""End-to-end adjudication: transcribe, moderate, format, judge, sign, persist."""

import logging
from typing import Any

from config.config_loader import AppConfig
from debate_council.audio import MB
from debate_council.council import ProgressSink, run_council
from debate_council.errors import InvalidInput, ModerationRejected
from debate_council.formatting import format_transcript
from debate_council.models import (
    JudgeStatus,
    JudgmentRequest,
    JudgmentResult,
    ProgressEvent,
    ProgressStep,
)
from debate_council.moderation import moderate_content
from debate_council.output import JudgmentStore
from debate_council.providers.base import StructuredLLM, TranscriptionProvider
from debate_council.signing import VerdictSigner
from debate_council.transcription import transcribe_audio

logger = logging.getLogger(__name__)


def _emit(
    on_progress: ProgressSink | None,
    step: ProgressStep,
    message: str,
    progress: int,
    **fields: Any,
) -> None:
    if on_progress:
        on_progress(ProgressEvent(step=step, message=message, progress=progress, **fields))


def validate_request(request: JudgmentRequest, max_audio_mb: int) -> None:
    """Raise InvalidInput for a request the pipeline cannot process."""
    if not request.metadata.topic or not request.metadata.topic.strip():
        raise InvalidInput("Topic is required")
    if not request.transcript and not request.audio:
        raise InvalidInput("Either transcript or audio files are required")
    audio_bytes = sum(len(buffer) for buffer in request.audio)
    if audio_bytes > max_audio_mb * MB:
        raise InvalidInput(
            f"Audio is {audio_bytes / MB:.1f}MB, the limit is {max_audio_mb}MB"
        )


async def run_judgment(
    request: JudgmentRequest,
    config: AppConfig,
    llm: StructuredLLM,
    signer: VerdictSigner,
    transcriber: TranscriptionProvider | None = None,
    store: JudgmentStore | None = None,
    on_progress: ProgressSink | None = None,
) -> JudgmentResult:
    """Run the whole pipeline for one debate.

    Args:
        request: Topic metadata plus a transcript and/or audio files. Audio,
            when present, takes precedence over the transcript text.
        config: Loaded application config (models, retry policies, prompts).
        llm: Structured-output endpoint for moderation, formatting and judges.
        signer: The process-wide verdict signer.
        transcriber: Required only when the request carries audio.
        store: Optional persistence sink; failures to save are logged only.
        on_progress: Optional sink for ProgressEvents.

    Returns:
        JudgmentResult with the stored id (None if unsaved), formatted
        transcript and signed verdict.

    Raises:
        InvalidInput, ModerationRejected, ChunkTranscriptionFailed,
        RetryExhausted, InsufficientQuorum.
    """
    validate_request(request, config.defaults.max_audio_file_size_mb)
    metadata = request.metadata
    topic = metadata.topic
    judges = request.models or config.council

    logger.info("New judgment request: %s", topic)
    logger.info("Audio files: %d, transcript provided: %s", len(request.audio), bool(request.transcript))

    raw_transcript = request.transcript
    if request.audio:
        if transcriber is None:
            raise InvalidInput("Audio supplied but no transcription provider is configured")
        _emit(on_progress, ProgressStep.TRANSCRIBING, "Transcribing audio...", 2)
        transcription = await transcribe_audio(
            request.audio,
            transcriber,
            max_parallel=config.defaults.max_parallel_chunks,
            retry=config.retry.default,
        )
        raw_transcript = transcription.text

    if not raw_transcript:
        raise InvalidInput("Failed to obtain transcript")

    _emit(on_progress, ProgressStep.MODERATING, "Checking content for appropriateness...", 5)
    moderation = await moderate_content(
        llm,
        raw_transcript,
        topic,
        config.stages.moderation_model,
        config.prompts,
        retry=config.retry.moderation,
        char_limit=config.stages.moderation_char_limit,
    )
    _emit(
        on_progress,
        ProgressStep.MODERATION_COMPLETE,
        "Content approved" if moderation.is_appropriate else f"Content rejected: {moderation.reason}",
        10,
        moderation=moderation,
    )
    if not moderation.is_appropriate:
        raise ModerationRejected(moderation.reason, moderation.flags)

    _emit(on_progress, ProgressStep.FORMATTING, "Analyzing transcript and identifying speakers...", 15)
    transcript = await format_transcript(
        llm,
        raw_transcript,
        topic,
        config.stages.formatting_model,
        config.prompts,
        retry=config.retry.default,
    )
    _emit(
        on_progress,
        ProgressStep.FORMATTING_COMPLETE,
        f"Identified {len(transcript.speakers)} speakers",
        20,
    )

    _emit(
        on_progress,
        ProgressStep.COUNCIL_STARTING,
        f"Starting evaluation with {len(judges)} AI judges...",
        25,
        total_judges=len(judges),
        completed_judges=0,
        judges=[JudgeStatus(name=j.name, status="pending") for j in judges],
    )
    verdict = await run_council(
        transcript,
        llm,
        judges,
        config.prompts,
        retry=config.retry.council,
        on_progress=on_progress,
        quorum=config.defaults.quorum,
    )

    _emit(on_progress, ProgressStep.SIGNING, "Signing verdict with cryptographic signature...", 90)
    signed = signer.sign(verdict)

    judgment_id: str | None = None
    if store is not None:
        _emit(on_progress, ProgressStep.SAVING, "Saving judgment...", 95)
        try:
            judgment_id = store.save(metadata, transcript, signed)
        except Exception as exc:
            logger.error("Failed to persist judgment, returning it unsaved: %s", exc)

    logger.info(
        "Judgment complete: id=%s winner=%s unanimous=%s signer=%s",
        judgment_id or "not saved",
        verdict.final_winner,
        verdict.unanimity,
        signed.signer_address,
    )
    _emit(on_progress, ProgressStep.COMPLETE, "Analysis complete!", 100)
    return JudgmentResult(id=judgment_id, transcript=transcript, signed_verdict=signed)
