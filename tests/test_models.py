"""Tests for debate_council/models.py dataclasses and debate_council/errors.py."""

import dataclasses

import pytest

from debate_council.errors import ChunkTranscriptionFailed, CouncilError, InsufficientQuorum, ModerationRejected
from debate_council.models import (
    DebateMetadata,
    IndividualJudgment,
    JudgmentRequest,
    ModerationResult,
    ProgressStep,
    Segment,
)


def test_segment_timestamp_optional():
    assert Segment(speaker="A", text="Hello").timestamp is None


def test_moderation_result_defaults():
    result = ModerationResult(is_appropriate=True)
    assert result.reason is None
    assert result.flags == []


def test_judgment_request_defaults():
    request = JudgmentRequest(metadata=DebateMetadata(topic="Tabs or spaces?"))
    assert request.transcript is None
    assert request.audio == []
    assert request.models is None


def test_individual_judgment_is_immutable():
    from tests.conftest import make_judgment

    judgment = make_judgment("Claude", "A")
    with pytest.raises(dataclasses.FrozenInstanceError):
        judgment.judge = "Someone else"  # type: ignore[misc]
    assert isinstance(judgment, IndividualJudgment)


def test_progress_step_values():
    assert ProgressStep.JUDGE_COMPLETED.value == "judge_completed"
    assert ProgressStep("aggregating") is ProgressStep.AGGREGATING


def test_errors_share_base():
    for exc in (
        InsufficientQuorum(1, 5),
        ModerationRejected(None),
        ChunkTranscriptionFailed(0, RuntimeError("x")),
    ):
        assert isinstance(exc, CouncilError)


def test_moderation_rejected_default_reason():
    exc = ModerationRejected(None)
    assert exc.reason == "Inappropriate content"
    assert str(exc) == "Content rejected: Inappropriate content"


def test_chunk_failure_message_is_one_based():
    assert str(ChunkTranscriptionFailed(2, RuntimeError("timeout"))) == "Chunk 3 failed to transcribe: timeout"
