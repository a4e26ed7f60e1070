"""Chunked, batched audio transcription with order-preserving merge."""

import asyncio
import logging
import math

from debate_council.audio import MB, split_into_chunks
from debate_council.errors import ChunkTranscriptionFailed, RetryExhausted
from debate_council.models import ChunkTranscription, TranscriptionResult
from debate_council.providers.base import TranscriptionProvider
from debate_council.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

MAX_PARALLEL_CHUNKS = 4  # keeps concurrent uploads under provider rate limits


async def _transcribe_one(
    provider: TranscriptionProvider,
    chunk: bytes,
    index: int,
    total: int,
    retry: RetryPolicy,
) -> tuple[int, ChunkTranscription]:
    logger.info(
        "  Transcribing chunk %d/%d (%.1fMB) with %s...",
        index + 1, total, len(chunk) / MB, provider.name(),
    )

    def on_retry(attempt: int, error: Exception) -> None:
        logger.warning("  Chunk %d %s retry %d: %s", index + 1, provider.name(), attempt, error)

    try:
        result = await with_retry(lambda: provider.transcribe_chunk(chunk, index, total), retry, on_retry)
    except RetryExhausted as exc:
        raise ChunkTranscriptionFailed(index, exc.last_error) from exc

    logger.info("  Chunk %d/%d complete", index + 1, total)
    return index, result


async def transcribe_chunks(
    provider: TranscriptionProvider,
    chunks: list[bytes],
    max_parallel: int = MAX_PARALLEL_CHUNKS,
    retry: RetryPolicy = RetryPolicy(),
) -> list[ChunkTranscription]:
    """Transcribe chunks in sequential batches of `max_parallel` concurrent calls.

    Every call in a batch runs to completion; if any chunk failed, the first
    failure (by chunk index) is raised and no further batch starts.

    Returns:
        Chunk results in original chunk order, whatever order they finished in.
    """
    total = len(chunks)
    batch_count = math.ceil(total / max_parallel)
    tagged: list[tuple[int, ChunkTranscription]] = []

    for batch_number, start in enumerate(range(0, total, max_parallel), start=1):
        batch = chunks[start:start + max_parallel]
        logger.info(
            "  Processing batch %d/%d (%d chunks in parallel)...",
            batch_number, batch_count, len(batch),
        )
        outcomes = await asyncio.gather(
            *(_transcribe_one(provider, chunk, start + i, total, retry) for i, chunk in enumerate(batch)),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        tagged.extend(outcomes)

    tagged.sort(key=lambda item: item[0])
    return [result for _, result in tagged]


def merge_chunk_texts(results: list[ChunkTranscription], use_speaker_labels: bool) -> tuple[str, bool]:
    """Join chunk results into one text.

    Returns:
        (text, speaker_labels_used). Speaker-labelled output keeps only the
        segments that carry a label, one "[speaker]: text" entry per segment.
    """
    if use_speaker_labels:
        labelled = [s for r in results for s in (r.segments or []) if s.speaker]
        if labelled:
            return "\n\n".join(f"[{s.speaker}]: {s.text.strip()}" for s in labelled), True
    return " ".join(r.text for r in results), False


async def transcribe_audio(
    buffers: list[bytes],
    provider: TranscriptionProvider,
    max_parallel: int = MAX_PARALLEL_CHUNKS,
    retry: RetryPolicy = RetryPolicy(),
) -> TranscriptionResult:
    """Transcribe one or more audio files as a single logical stream.

    Raises:
        ChunkTranscriptionFailed: If any chunk exhausts its retries.
        ValueError: If no audio was supplied.
    """
    if not buffers:
        raise ValueError("No audio buffers supplied")

    audio = buffers[0] if len(buffers) == 1 else b"".join(buffers)
    threshold = provider.chunk_size_bytes()
    logger.info(
        "Transcribing with %s: %.1fMB from %d file(s)",
        provider.name(), len(audio) / MB, len(buffers),
    )
    if provider.diarizes():
        logger.info("  Speaker diarization enabled")

    chunks = split_into_chunks(audio, threshold)
    if len(chunks) > 1:
        logger.info(
            "  File exceeds %.0fMB, split into %d chunks (processing %d in parallel)",
            threshold / MB, len(chunks), max_parallel,
        )

    results = await transcribe_chunks(provider, chunks, max_parallel, retry)
    text, speaker_labels_used = merge_chunk_texts(results, provider.diarizes())
    duration = sum(r.duration_seconds or 0 for r in results)

    logger.info(
        "%s transcription complete: %d characters from %d chunk(s)",
        provider.name(), len(text), len(chunks),
    )
    return TranscriptionResult(
        text=text,
        total_duration_seconds=duration if duration > 0 else None,
        chunk_count=len(chunks),
        provider_name=provider.name(),
        speaker_labels_used=speaker_labels_used,
    )
