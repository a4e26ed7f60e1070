"""Pure dataclasses for the debate council pipeline. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class Speaker:
    id: str
    position: str          # "Pro", "Con", "Affirmative", ...
    speaking_order: int    # 1-indexed


@dataclass
class Segment:
    speaker: str           # must match a Speaker.id
    text: str
    timestamp: str | None = None


@dataclass
class Transcript:
    topic: str
    speakers: list[Speaker]
    segments: list[Segment]
    summary: str


@dataclass
class SpeakerScore:
    speaker: str
    argumentation: float
    evidence: float
    delivery: float
    rebuttal: float
    total: float           # supplied by the judge, not derived


@dataclass
class KeyMoment:
    speaker: str
    moment: str
    impact: str            # "positive" or "negative"


@dataclass
class JudgeEvaluation:
    winner: str
    confidence: float      # 0-100
    scores: list[SpeakerScore]
    reasoning: str
    key_moments: list[KeyMoment] = field(default_factory=list)


@dataclass(frozen=True)
class IndividualJudgment:
    judge: str
    evaluation: JudgeEvaluation


@dataclass
class CouncilVerdict:
    final_winner: str
    unanimity: bool
    vote_count: dict[str, int]
    average_scores: list[SpeakerScore]
    individual_judgments: list[IndividualJudgment]
    consensus_summary: str


@dataclass
class SignedVerdict:
    verdict: CouncilVerdict
    hash: str              # hex SHA-256 of the canonical verdict
    signature: str         # hex Ed25519 signature over the raw digest
    signer_address: str    # hex raw public key
    timestamp: int         # epoch millis


@dataclass
class VerificationResult:
    valid: bool
    hash_match: bool
    expected_signer: str
    signature_valid: bool = False


@dataclass
class DiarizedSegment:
    text: str
    start: float = 0.0
    end: float = 0.0
    speaker: str | None = None


@dataclass
class ChunkTranscription:
    text: str
    duration_seconds: float | None = None
    segments: list[DiarizedSegment] | None = None


@dataclass
class TranscriptionResult:
    text: str
    total_duration_seconds: float | None   # None when no duration was reported
    chunk_count: int
    provider_name: str
    speaker_labels_used: bool = False


@dataclass
class ModerationResult:
    is_appropriate: bool
    reason: str | None = None
    flags: list[str] = field(default_factory=list)


@dataclass
class CouncilModel:
    id: str                # gateway form "provider/model"
    name: str
    supports_reasoning_effort: bool = False


@dataclass
class DebateMetadata:
    topic: str
    description: str | None = None
    thumbnail: str | None = None


class ProgressStep(str, Enum):
    TRANSCRIBING = "transcribing"
    MODERATING = "moderating"
    MODERATION_COMPLETE = "moderation_complete"
    FORMATTING = "formatting"
    FORMATTING_COMPLETE = "formatting_complete"
    COUNCIL_STARTING = "council_starting"
    JUDGE_STARTED = "judge_started"
    JUDGE_COMPLETED = "judge_completed"
    JUDGE_FAILED = "judge_failed"
    AGGREGATING = "aggregating"
    SIGNING = "signing"
    SAVING = "saving"
    COMPLETE = "complete"


@dataclass
class JudgeStatus:
    name: str
    status: str            # "pending", "evaluating", "completed", "failed"
    winner: str | None = None
    confidence: float | None = None


@dataclass
class ProgressEvent:
    step: ProgressStep
    message: str
    progress: int          # 0-100
    judge_name: str | None = None
    judge_index: int | None = None
    total_judges: int | None = None
    completed_judges: int | None = None
    winner: str | None = None
    confidence: float | None = None
    error: str | None = None
    judges: list[JudgeStatus] | None = None
    moderation: ModerationResult | None = None


@dataclass
class JudgmentRequest:
    metadata: DebateMetadata
    transcript: str | None = None
    audio: list[bytes] = field(default_factory=list)
    models: list[CouncilModel] | None = None   # None -> default council


@dataclass
class JudgmentResult:
    id: str | None
    transcript: Transcript
    signed_verdict: SignedVerdict
