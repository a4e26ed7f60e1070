"""JSON schemas and validation for structured model output and stored verdicts.

The dataclasses in models.py stay dependency free; pydantic adapters wrap
them here to derive the schemas sent to the models and to coerce the dicts
that come back.
"""

import dataclasses
from typing import Any

from pydantic import TypeAdapter

from debate_council.models import (
    CouncilVerdict,
    JudgeEvaluation,
    ModerationResult,
    SignedVerdict,
    Transcript,
)

_TRANSCRIPT = TypeAdapter(Transcript)
_JUDGE_EVALUATION = TypeAdapter(JudgeEvaluation)
_MODERATION = TypeAdapter(ModerationResult)
_VERDICT = TypeAdapter(CouncilVerdict)
_SIGNED_VERDICT = TypeAdapter(SignedVerdict)

TRANSCRIPT_SCHEMA: dict[str, Any] = _TRANSCRIPT.json_schema()
JUDGE_EVALUATION_SCHEMA: dict[str, Any] = _JUDGE_EVALUATION.json_schema()
MODERATION_SCHEMA: dict[str, Any] = _MODERATION.json_schema()


def parse_transcript(raw: dict[str, Any]) -> Transcript:
    """Validate a formatter result, including speaker-id consistency.

    Raises:
        ValueError: On schema errors, duplicate speaker ids, or a segment
            attributed to an undeclared speaker.
    """
    transcript = _TRANSCRIPT.validate_python(raw)
    speaker_ids = [s.id for s in transcript.speakers]
    if not speaker_ids:
        raise ValueError("Transcript declares no speakers")
    if len(set(speaker_ids)) != len(speaker_ids):
        raise ValueError(f"Duplicate speaker ids: {speaker_ids}")
    declared = set(speaker_ids)
    unknown = sorted({seg.speaker for seg in transcript.segments if seg.speaker not in declared})
    if unknown:
        raise ValueError(f"Segments reference undeclared speakers: {', '.join(unknown)}")
    return transcript


def check_evaluation_structure(raw: Any) -> None:
    """Reject a judge result missing the fields aggregation depends on.

    Raises:
        ValueError: Unless winner and reasoning are non-empty strings,
            confidence is a number and scores is a non-empty list.
    """
    if not isinstance(raw, dict):
        raise ValueError("Invalid response structure: not an object")
    confidence = raw.get("confidence")
    if (
        not raw.get("winner")
        or isinstance(confidence, bool)
        or not isinstance(confidence, (int, float))
        or not raw.get("scores")
        or not isinstance(raw.get("scores"), list)
        or not raw.get("reasoning")
    ):
        raise ValueError("Invalid response structure")


def parse_judge_evaluation(raw: dict[str, Any]) -> JudgeEvaluation:
    check_evaluation_structure(raw)
    evaluation = _JUDGE_EVALUATION.validate_python(raw)
    if not 0 <= evaluation.confidence <= 100:
        raise ValueError(f"Confidence out of range: {evaluation.confidence}")
    return evaluation


def parse_moderation(raw: dict[str, Any]) -> ModerationResult:
    return _MODERATION.validate_python(raw)


def parse_verdict(raw: dict[str, Any]) -> CouncilVerdict:
    return _VERDICT.validate_python(raw)


def parse_signed_verdict(raw: dict[str, Any]) -> SignedVerdict:
    return _SIGNED_VERDICT.validate_python(raw)


def to_dict(obj: Any) -> dict[str, Any]:
    """Plain-dict form of a model dataclass (field order preserved)."""
    return dataclasses.asdict(obj)
