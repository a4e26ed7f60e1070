"""Council orchestration: parallel judge calls, quorum, vote and score aggregation."""

import asyncio
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass

from config.config_loader import PromptsConfig
from debate_council.errors import InsufficientQuorum
from debate_council.models import (
    CouncilModel,
    CouncilVerdict,
    IndividualJudgment,
    JudgeEvaluation,
    JudgeStatus,
    ProgressEvent,
    ProgressStep,
    SpeakerScore,
    Transcript,
)
from debate_council.providers.base import StructuredLLM
from debate_council.retry import RetryPolicy, with_retry
from debate_council.schemas import JUDGE_EVALUATION_SCHEMA, parse_judge_evaluation

logger = logging.getLogger(__name__)

QUORUM = 2
COUNCIL_RETRY = RetryPolicy(max_retries=5, delay_sec=2.0, backoff="exponential")

# Council events occupy the 25-85% band of overall pipeline progress.
_PROGRESS_START = 25
_PROGRESS_SPAN = 60

_DIMENSIONS = ("argumentation", "evidence", "delivery", "rebuttal", "total")

ProgressSink = Callable[[ProgressEvent], None]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with ties going up (8.25 -> 8.3 at one digit), unlike round()."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def build_judge_prompt(transcript: Transcript, prompts: PromptsConfig) -> str:
    """Render the judge user prompt for a formatted transcript."""
    return prompts.judge_user.format(
        topic=transcript.topic,
        speakers="\n".join(f"- {s.id}: {s.position}" for s in transcript.speakers),
        segments="\n\n".join(f"[{s.speaker}]: {s.text}" for s in transcript.segments),
        summary=transcript.summary,
        speaker_ids=", ".join(s.id for s in transcript.speakers),
    )


@dataclass
class _JudgeUpdate:
    step: ProgressStep
    index: int
    judgment: IndividualJudgment | None = None
    error: str | None = None


class _ProgressTracker:
    """Judge status snapshot. Only the queue consumer calls apply()."""

    def __init__(self, judges: list[CouncilModel]) -> None:
        self._judges = judges
        self.statuses = [JudgeStatus(name=j.name, status="pending") for j in judges]
        self.completed = 0

    def apply(self, update: _JudgeUpdate) -> ProgressEvent:
        total = len(self._judges)
        if update.step == ProgressStep.AGGREGATING:
            return ProgressEvent(
                step=update.step,
                message="Aggregating results...",
                progress=self._progress(),
                total_judges=total,
                completed_judges=self.completed,
                judges=self._snapshot(),
            )

        judge = self._judges[update.index]
        status = self.statuses[update.index]
        winner = confidence = None
        if update.step == ProgressStep.JUDGE_STARTED:
            status.status = "evaluating"
            message = f"{judge.name} is evaluating..."
        elif update.step == ProgressStep.JUDGE_COMPLETED:
            self.completed += 1
            evaluation = update.judgment.evaluation
            winner, confidence = evaluation.winner, evaluation.confidence
            status.status, status.winner, status.confidence = "completed", winner, confidence
            message = f"{judge.name} voted for {winner} ({confidence:g}% confidence)"
        else:
            status.status = "failed"
            message = f"{judge.name} failed after retries"

        return ProgressEvent(
            step=update.step,
            message=message,
            progress=self._progress(),
            judge_name=judge.name,
            judge_index=update.index,
            total_judges=total,
            completed_judges=self.completed,
            winner=winner,
            confidence=confidence,
            error=update.error,
            judges=self._snapshot(),
        )

    def _progress(self) -> int:
        return _PROGRESS_START + int(round_half_up(self.completed / len(self._judges) * _PROGRESS_SPAN))

    def _snapshot(self) -> list[JudgeStatus]:
        return [JudgeStatus(s.name, s.status, s.winner, s.confidence) for s in self.statuses]


async def _consume_updates(
    updates: "asyncio.Queue[_JudgeUpdate | None]",
    tracker: _ProgressTracker,
    on_progress: ProgressSink | None,
) -> None:
    while (update := await updates.get()) is not None:
        event = tracker.apply(update)
        if on_progress:
            on_progress(event)


async def _evaluate_judge(
    llm: StructuredLLM,
    judge: CouncilModel,
    system_prompt: str,
    user_prompt: str,
    retry: RetryPolicy,
) -> IndividualJudgment:
    options = {"reasoning_effort": "high"} if judge.supports_reasoning_effort else None

    async def attempt() -> JudgeEvaluation:
        raw = await llm.evaluate_structured(
            system_prompt, user_prompt, JUDGE_EVALUATION_SCHEMA, judge.id, options
        )
        return parse_judge_evaluation(raw)

    def on_retry(attempt_number: int, error: Exception) -> None:
        logger.warning("Judge %s retry %d/%d: %s", judge.name, attempt_number, retry.max_retries, error)

    evaluation = await with_retry(attempt, retry, on_retry)
    return IndividualJudgment(judge=judge.name, evaluation=evaluation)


async def _run_judge(
    index: int,
    judge: CouncilModel,
    llm: StructuredLLM,
    system_prompt: str,
    user_prompt: str,
    retry: RetryPolicy,
    updates: "asyncio.Queue[_JudgeUpdate | None]",
) -> IndividualJudgment | None:
    """Evaluate one judge. Never raises; a failure is reported and returns None."""
    await updates.put(_JudgeUpdate(ProgressStep.JUDGE_STARTED, index))
    logger.info("Getting evaluation from %s...", judge.name)
    try:
        judgment = await _evaluate_judge(llm, judge, system_prompt, user_prompt, retry)
    except Exception as exc:
        logger.error("%s FAILED after %d attempts: %s", judge.name, retry.max_retries, exc)
        await updates.put(_JudgeUpdate(ProgressStep.JUDGE_FAILED, index, error=str(exc)))
        return None

    logger.info(
        "%s verdict: %s (confidence: %s%%)",
        judge.name,
        judgment.evaluation.winner,
        judgment.evaluation.confidence,
    )
    await updates.put(_JudgeUpdate(ProgressStep.JUDGE_COMPLETED, index, judgment=judgment))
    return judgment


async def run_council(
    transcript: Transcript,
    llm: StructuredLLM,
    judges: list[CouncilModel],
    prompts: PromptsConfig,
    retry: RetryPolicy = COUNCIL_RETRY,
    on_progress: ProgressSink | None = None,
    quorum: int = QUORUM,
) -> CouncilVerdict:
    """Run every judge concurrently and aggregate the successful evaluations.

    Args:
        transcript: The formatted debate transcript.
        llm: Structured-output endpoint shared by all judges.
        judges: Council members; all are launched at once.
        prompts: Prompt templates from config.
        retry: Per-judge retry policy; each judge retries independently.
        on_progress: Optional sink for judge_started/completed/failed and
            aggregating events.
        quorum: Minimum number of successful judgments.

    Returns:
        The aggregated CouncilVerdict.

    Raises:
        InsufficientQuorum: If fewer than `quorum` judges succeed.
        ValueError: If the council is empty.
    """
    if not judges:
        raise ValueError("Council needs at least one judge")

    total = len(judges)
    user_prompt = build_judge_prompt(transcript, prompts)
    logger.info("Running council with %d judges: %s", total, ", ".join(j.name for j in judges))

    updates: asyncio.Queue[_JudgeUpdate | None] = asyncio.Queue()
    tracker = _ProgressTracker(judges)
    consumer = asyncio.create_task(_consume_updates(updates, tracker, on_progress))

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(
                    _run_judge(i, judge, llm, prompts.judge_system, user_prompt, retry, updates)
                )
                for i, judge in enumerate(judges)
            ]

        judgments = [t.result() for t in tasks if t.result() is not None]
        failed_judges = total - len(judgments)
        if len(judgments) >= quorum:
            await updates.put(_JudgeUpdate(ProgressStep.AGGREGATING, -1))
    finally:
        await updates.put(None)
        await consumer

    if len(judgments) < quorum:
        raise InsufficientQuorum(len(judgments), total, quorum)

    if failed_judges:
        logger.warning(
            "%d judge(s) failed, proceeding with %d verdicts", failed_judges, len(judgments)
        )

    verdict = aggregate_judgments(judgments, failed_judges)
    logger.info(
        "Council verdict: %s wins (%s) - %d/%d judges responded",
        verdict.final_winner,
        "unanimous" if verdict.unanimity else "split decision",
        len(judgments),
        total,
    )
    return verdict


def _average_scores(judgments: list[IndividualJudgment]) -> list[SpeakerScore]:
    """Per-speaker mean of each dimension over the judgments that scored that speaker."""
    by_speaker: dict[str, dict[str, list[float]]] = {}
    for judgment in judgments:
        for score in judgment.evaluation.scores:
            dims = by_speaker.setdefault(score.speaker, {d: [] for d in _DIMENSIONS})
            for d in _DIMENSIONS:
                dims[d].append(getattr(score, d))

    return [
        SpeakerScore(
            speaker=speaker,
            **{d: round_half_up(sum(values) / len(values), 1) for d, values in dims.items()},
        )
        for speaker, dims in by_speaker.items()
    ]


def _decision_basis(final_winner: str, average_scores: list[SpeakerScore]) -> str:
    """Pick the clause for a split decision.

    When the winner has an average entry, a non-zero argumentation average
    alone selects "argumentation"; the runner-up is consulted only when the
    winner was never scored, and then "argumentation" requires the runner-up
    average to be negative.
    """
    winner = next((s for s in average_scores if s.speaker == final_winner), None)
    runner_up = next((s for s in average_scores if s.speaker != final_winner), None)
    if winner is not None:
        superior = winner.argumentation != 0
    else:
        superior = 0 > (runner_up.argumentation if runner_up is not None else 0)
    return "argumentation" if superior else "overall performance"


def consensus_summary(
    final_winner: str,
    unanimity: bool,
    vote_count: dict[str, int],
    average_scores: list[SpeakerScore],
    failed_judges: int = 0,
) -> str:
    failed_note = f" ({failed_judges} judge(s) failed to respond)" if failed_judges > 0 else ""
    if unanimity:
        return f"The council unanimously voted for {final_winner} as the winner of this debate.{failed_note}"

    winner_votes = vote_count[final_winner]
    total_votes = sum(vote_count.values())
    basis = _decision_basis(final_winner, average_scores)
    return (
        f"The council voted {winner_votes}-{total_votes - winner_votes} in favor of {final_winner}. "
        f"The decision was based on superior {basis} across the evaluated criteria.{failed_note}"
    )


def aggregate_judgments(judgments: list[IndividualJudgment], failed_judges: int = 0) -> CouncilVerdict:
    """Fold successful judgments into a verdict.

    Ties on votes go to the speaker whose first vote came earliest in
    `judgments` order (dict insertion order; max() keeps the first maximum).
    """
    if not judgments:
        raise ValueError("Cannot aggregate zero judgments")

    vote_count: dict[str, int] = {}
    for judgment in judgments:
        winner = judgment.evaluation.winner
        vote_count[winner] = vote_count.get(winner, 0) + 1

    final_winner = max(vote_count, key=vote_count.__getitem__)
    unanimity = any(count == len(judgments) for count in vote_count.values())
    average_scores = _average_scores(judgments)

    return CouncilVerdict(
        final_winner=final_winner,
        unanimity=unanimity,
        vote_count=vote_count,
        average_scores=average_scores,
        individual_judgments=list(judgments),
        consensus_summary=consensus_summary(
            final_winner, unanimity, vote_count, average_scores, failed_judges
        ),
    )
