"""Whisper-style transcription over the OpenAI SDK (OpenAI, Lemonfox)."""

import asyncio
import logging
import os
import time
from typing import Any

from openai import AsyncOpenAI

from config.config_loader import TranscriberConfig
from debate_council.audio import MB
from debate_council.models import ChunkTranscription, DiarizedSegment
from debate_council.providers.base import ProviderError, TranscriptionProvider

logger = logging.getLogger(__name__)


class WhisperTranscriber(TranscriptionProvider):
    """Transcribe chunks against an OpenAI-compatible audio endpoint.

    Lemonfox serves the same API at its own base_url and adds speaker labels
    to each segment when `speaker_labels` is requested.
    """

    def __init__(self, config: TranscriberConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def chunk_size_bytes(self) -> int:
        return self._config.chunk_size_mb * MB

    def diarizes(self) -> bool:
        return self._config.speaker_labels

    async def transcribe_chunk(self, chunk: bytes, index: int, total: int) -> ChunkTranscription:
        extra: dict[str, Any] = {}
        if self._config.speaker_labels:
            extra["extra_body"] = {"speaker_labels": True}

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.audio.transcriptions.create(
                    model=self._config.model,
                    file=(f"chunk-{index}.mp3", chunk),
                    language=self._config.language,
                    response_format="verbose_json",
                    **extra,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        if response.text is None:
            raise ProviderError(self._config.name, "Empty transcription")

        segments = None
        if response.segments:
            segments = [
                DiarizedSegment(
                    text=seg.text,
                    start=seg.start,
                    end=seg.end,
                    speaker=getattr(seg, "speaker", None),
                )
                for seg in response.segments
            ]

        logger.debug(
            "%s chunk %d/%d: %.2fs",
            self._config.name, index + 1, total, time.monotonic() - start,
        )
        return ChunkTranscription(
            text=response.text,
            duration_seconds=getattr(response, "duration", None),
            segments=segments,
        )
