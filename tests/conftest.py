"""Shared pytest fixtures."""

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    PromptsConfig,
    RetryConfig,
    SigningConfig,
    StagesConfig,
    TranscriberConfig,
    TranscriptionConfig,
)
from debate_council.models import (
    ChunkTranscription,
    CouncilModel,
    IndividualJudgment,
    JudgeEvaluation,
    Segment,
    Speaker,
    SpeakerScore,
    Transcript,
)
from debate_council.providers.base import StructuredLLM, TranscriptionProvider
from debate_council.retry import RetryPolicy
from debate_council.schemas import JUDGE_EVALUATION_SCHEMA, MODERATION_SCHEMA, TRANSCRIPT_SCHEMA
from debate_council.signing import VerdictSigner

NO_WAIT = RetryPolicy(max_retries=3, delay_sec=0.0)

TEST_SEED = "test-seed-do-not-use-in-production"


def evaluation_dict(
    winner: str,
    confidence: float = 80,
    scores: dict[str, tuple[float, float, float, float, float]] | None = None,
    reasoning: str = "Stronger case overall.",
) -> dict[str, Any]:
    """A raw judge result as a model would return it."""
    scores = scores or {"Pro-remote": (8, 7, 8, 7, 30), "Anti-remote": (6, 6, 7, 5, 24)}
    return {
        "winner": winner,
        "confidence": confidence,
        "scores": [
            {
                "speaker": speaker,
                "argumentation": a,
                "evidence": e,
                "delivery": d,
                "rebuttal": r,
                "total": t,
            }
            for speaker, (a, e, d, r, t) in scores.items()
        ],
        "reasoning": reasoning,
        "key_moments": [],
    }


def make_judgment(judge: str, winner: str, argumentation: dict[str, float] | None = None) -> IndividualJudgment:
    argumentation = argumentation or {winner: 8.0}
    return IndividualJudgment(
        judge=judge,
        evaluation=JudgeEvaluation(
            winner=winner,
            confidence=75.0,
            scores=[
                SpeakerScore(
                    speaker=s, argumentation=float(a), evidence=7.0, delivery=7.0, rebuttal=7.0, total=a + 21.0
                )
                for s, a in argumentation.items()
            ],
            reasoning=f"{judge} reasoning",
        ),
    )


class FakeLLM(StructuredLLM):
    """Test double StructuredLLM.

    Answers by schema: moderation, formatting, and judge results keyed by
    model id. A judge entry may be a dict, an Exception (raised on every
    call) or a list consumed one item per call.
    """

    def __init__(
        self,
        judge_results: dict[str, Any] | None = None,
        moderation: dict[str, Any] | None = None,
        transcript: dict[str, Any] | None = None,
    ) -> None:
        self.judge_results = dict(judge_results or {})
        self.moderation = moderation or {"is_appropriate": True, "reason": None, "flags": []}
        self.transcript = transcript
        self.calls: list[dict[str, Any]] = []

    def name(self) -> str:
        return "fake"

    async def evaluate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, Any],
        model_id: str,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.calls.append({"model_id": model_id, "schema": schema, "user_prompt": user_prompt, "options": options})
        if schema is MODERATION_SCHEMA:
            return self.moderation
        if schema is TRANSCRIPT_SCHEMA:
            if self.transcript is None:
                raise RuntimeError("no transcript configured")
            return self.transcript
        assert schema is JUDGE_EVALUATION_SCHEMA
        result = self.judge_results[model_id]
        if isinstance(result, list):
            result = result.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def calls_for(self, model_id: str) -> int:
        return sum(1 for c in self.calls if c["model_id"] == model_id)


class FakeTranscriber(TranscriptionProvider):
    """Test double TranscriptionProvider; transcribe_chunk is an AsyncMock."""

    def __init__(self, chunk_size: int = 4, diarize: bool = False) -> None:
        self._chunk_size = chunk_size
        self._diarize = diarize
        self.transcribe_chunk = AsyncMock(  # type: ignore[assignment]
            side_effect=lambda chunk, index, total: ChunkTranscription(
                text=chunk.decode("utf-8"), duration_seconds=1.5
            )
        )

    def name(self) -> str:
        return "fake-transcriber"

    def chunk_size_bytes(self) -> int:
        return self._chunk_size

    def diarizes(self) -> bool:
        return self._diarize

    async def transcribe_chunk(self, chunk: bytes, index: int, total: int) -> ChunkTranscription:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ChunkTranscription(text=chunk.decode("utf-8"))


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        judge_system="You are a debate judge.",
        judge_user="Topic: {topic}\nSpeakers:\n{speakers}\n{segments}\nSummary: {summary}\nIds: {speaker_ids}",
        moderation_system="You are a moderator.",
        moderation_user="Topic: {topic}\nFirst {char_limit} chars:\n{transcript}",
        formatting_system="You format transcripts.",
        formatting_user="Topic: {topic}\n{transcript}",
    )


@pytest.fixture
def council_models() -> list[CouncilModel]:
    return [
        CouncilModel(id="xai/grok", name="Grok"),
        CouncilModel(id="google/gemini", name="Gemini"),
        CouncilModel(id="anthropic/claude", name="Claude"),
        CouncilModel(id="openai/gpt", name="GPT", supports_reasoning_effort=True),
        CouncilModel(id="deepseek/deepseek", name="DeepSeek"),
    ]


@pytest.fixture
def sample_app_config(
    tmp_path: Path,
    sample_prompts_config: PromptsConfig,
    council_models: list[CouncilModel],
) -> AppConfig:
    no_wait = RetryConfig(
        default=NO_WAIT,
        moderation=RetryPolicy(max_retries=2, delay_sec=0.0),
        council=RetryPolicy(max_retries=5, delay_sec=0.0),
    )
    return AppConfig(
        defaults=DefaultsConfig(output_dir=tmp_path / "judgments", max_audio_file_size_mb=1),
        endpoints={},
        stages=StagesConfig(moderation_model="google/flash", formatting_model="google/flash"),
        retry=no_wait,
        council=council_models,
        transcription=TranscriptionConfig(
            provider="openai",
            providers={
                "openai": TranscriberConfig(
                    name="openai",
                    model="whisper-1",
                    api_key_env="TEST_OPENAI_KEY",
                    chunk_size_mb=24,
                    timeout_sec=60,
                )
            },
        ),
        signing=SigningConfig(seed_env="TEST_SIGNER_SEED"),
        prompts=sample_prompts_config,
    )


@pytest.fixture
def sample_transcript_dict() -> dict[str, Any]:
    return {
        "topic": "Should remote work be default?",
        "speakers": [
            {"id": "Pro-remote", "position": "Pro", "speaking_order": 1},
            {"id": "Anti-remote", "position": "Con", "speaking_order": 2},
        ],
        "segments": [
            {"speaker": "Pro-remote", "text": "Remote work raises productivity."},
            {"speaker": "Anti-remote", "text": "Collaboration suffers without an office."},
            {"speaker": "Pro-remote", "text": "Async tools close that gap."},
        ],
        "summary": "A debate on making remote work the default.",
    }


@pytest.fixture
def sample_transcript() -> Transcript:
    return Transcript(
        topic="Should remote work be default?",
        speakers=[
            Speaker(id="Pro-remote", position="Pro", speaking_order=1),
            Speaker(id="Anti-remote", position="Con", speaking_order=2),
        ],
        segments=[
            Segment(speaker="Pro-remote", text="Remote work raises productivity."),
            Segment(speaker="Anti-remote", text="Collaboration suffers without an office."),
        ],
        summary="A debate on making remote work the default.",
    )


@pytest.fixture
def signer() -> VerdictSigner:
    return VerdictSigner.from_seed(TEST_SEED)


@pytest.fixture
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber()
