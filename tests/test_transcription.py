"""Tests for debate_council/transcription.py: fake provider, no API calls."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from debate_council.errors import ChunkTranscriptionFailed
from debate_council.models import ChunkTranscription, DiarizedSegment
from debate_council.providers.base import ProviderError
from debate_council.retry import RetryPolicy
from debate_council.transcription import merge_chunk_texts, transcribe_audio, transcribe_chunks
from tests.conftest import NO_WAIT, FakeTranscriber


async def test_single_small_file_one_chunk(fake_transcriber):
    result = await transcribe_audio([b"abc"], fake_transcriber, retry=NO_WAIT)
    assert result.text == "abc"
    assert result.chunk_count == 1
    assert result.provider_name == "fake-transcriber"
    assert result.total_duration_seconds == 1.5
    assert result.speaker_labels_used is False


async def test_multiple_files_are_concatenated_before_chunking(fake_transcriber):
    result = await transcribe_audio([b"aaaa", b"bbbb", b"cc"], fake_transcriber, retry=NO_WAIT)
    assert result.chunk_count == 3
    assert result.text == "aaaa bbbb cc"


async def test_reversed_completion_order_merges_in_chunk_order():
    """Later chunks finishing first must not change the merged text."""
    in_order = FakeTranscriber(chunk_size=2)
    reversed_order = FakeTranscriber(chunk_size=2)

    async def slow_early_chunks(chunk, index, total):
        await asyncio.sleep(0.01 * (total - index))
        return ChunkTranscription(text=chunk.decode("utf-8"))

    reversed_order.transcribe_chunk = AsyncMock(side_effect=slow_early_chunks)

    audio = [b"aabbccdd"]
    expected = await transcribe_audio(audio, in_order, retry=NO_WAIT)
    actual = await transcribe_audio(audio, reversed_order, retry=NO_WAIT)
    assert actual.text == expected.text == "aa bb cc dd"


async def test_batches_limit_concurrency():
    provider = FakeTranscriber(chunk_size=1)
    running = 0
    peak = 0

    async def track(chunk, index, total):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return ChunkTranscription(text=chunk.decode("utf-8"))

    provider.transcribe_chunk = AsyncMock(side_effect=track)
    results = await transcribe_chunks(provider, [b"a", b"b", b"c", b"d", b"e", b"f"], max_parallel=4, retry=NO_WAIT)
    assert [r.text for r in results] == ["a", "b", "c", "d", "e", "f"]
    assert peak == 4


async def test_chunk_retried_then_succeeds(fake_transcriber):
    fake_transcriber.transcribe_chunk = AsyncMock(
        side_effect=[ProviderError("fake", "503"), ChunkTranscription(text="hello")]
    )
    result = await transcribe_audio([b"abc"], fake_transcriber, retry=NO_WAIT)
    assert result.text == "hello"
    assert fake_transcriber.transcribe_chunk.await_count == 2


async def test_chunk_failure_fails_whole_transcription():
    provider = FakeTranscriber(chunk_size=2)

    async def fail_second(chunk, index, total):
        if index == 1:
            raise ProviderError("fake", "bad audio")
        return ChunkTranscription(text=chunk.decode("utf-8"))

    provider.transcribe_chunk = AsyncMock(side_effect=fail_second)
    with pytest.raises(ChunkTranscriptionFailed) as exc_info:
        await transcribe_audio([b"aabbcc"], provider, retry=RetryPolicy(max_retries=2, delay_sec=0.0))
    assert exc_info.value.chunk_index == 1
    assert "bad audio" in str(exc_info.value)


async def test_failure_stops_later_batches():
    provider = FakeTranscriber(chunk_size=1)

    async def fail_first(chunk, index, total):
        if index == 0:
            raise ProviderError("fake", "down")
        return ChunkTranscription(text="ok")

    provider.transcribe_chunk = AsyncMock(side_effect=fail_first)
    with pytest.raises(ChunkTranscriptionFailed):
        await transcribe_chunks(provider, [b"a"] * 6, max_parallel=2, retry=RetryPolicy(max_retries=1))
    # only the first batch ran
    assert provider.transcribe_chunk.await_count == 2


async def test_empty_buffer_list_rejected(fake_transcriber):
    with pytest.raises(ValueError):
        await transcribe_audio([], fake_transcriber)


def test_merge_with_speaker_labels():
    results = [
        ChunkTranscription(
            text="Hi there. Hello.",
            segments=[
                DiarizedSegment(text=" Hi there.", speaker="SPEAKER_00"),
                DiarizedSegment(text="Hello.", speaker="SPEAKER_01"),
            ],
        ),
        ChunkTranscription(text="Bye.", segments=[DiarizedSegment(text="Bye.", speaker="SPEAKER_00")]),
    ]
    text, used = merge_chunk_texts(results, use_speaker_labels=True)
    assert used is True
    assert text == "[SPEAKER_00]: Hi there.\n\n[SPEAKER_01]: Hello.\n\n[SPEAKER_00]: Bye."


def test_merge_falls_back_to_plain_text_without_labels():
    results = [
        ChunkTranscription(text="one", segments=[DiarizedSegment(text="one")]),
        ChunkTranscription(text="two"),
    ]
    text, used = merge_chunk_texts(results, use_speaker_labels=True)
    assert used is False
    assert text == "one two"


async def test_duration_none_when_not_reported():
    provider = FakeTranscriber()
    provider.transcribe_chunk = AsyncMock(return_value=ChunkTranscription(text="x"))
    result = await transcribe_audio([b"x"], provider, retry=NO_WAIT)
    assert result.total_duration_seconds is None
