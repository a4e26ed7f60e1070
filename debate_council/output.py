"""Rich console output and JSON-file persistence for judgments."""

import json
import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Protocol

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from debate_council.models import (
    CouncilVerdict,
    DebateMetadata,
    SignedVerdict,
    Transcript,
    VerificationResult,
)
from debate_council.schemas import parse_signed_verdict, to_dict

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


class JudgmentStore(Protocol):
    def save(
        self, metadata: DebateMetadata, transcript: Transcript, signed: SignedVerdict
    ) -> str | None:
        ...


class JsonFileStore:
    """One JSON document per judgment under `output_dir`."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir

    def save(
        self, metadata: DebateMetadata, transcript: Transcript, signed: SignedVerdict
    ) -> str | None:
        """Write the judgment and return its id, or None if the write failed."""
        judgment_id = uuid.uuid4().hex
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self._output_dir / f"{timestamp}_{_slug(metadata.topic)}_{judgment_id[:8]}.json"
        document = {
            "id": judgment_id,
            "metadata": to_dict(metadata),
            "transcript": to_dict(transcript),
            "signed_verdict": to_dict(signed),
        }
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            filepath.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save judgment %s: %s", judgment_id, exc)
            return None
        logger.info("Judgment saved to: %s", filepath)
        return judgment_id


def load_signed_verdict(path: Path) -> SignedVerdict:
    """Read a stored judgment (or a bare signed verdict) back into a SignedVerdict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document does not hold a valid signed verdict.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if "signed_verdict" in data:
        data = data["signed_verdict"]
    return parse_signed_verdict(data)


def print_verdict(verdict: CouncilVerdict) -> None:
    """Print votes, averaged scores and the consensus summary."""
    console.print(Rule("[bold green]Council Verdict[/bold green]"))
    decision = "unanimous" if verdict.unanimity else "split decision"
    console.print(f"[bold]Winner:[/bold] {verdict.final_winner} ({decision})")
    votes = ", ".join(f"{speaker}: {count}" for speaker, count in verdict.vote_count.items())
    console.print(f"[bold]Votes:[/bold] {votes}")

    table = Table(title="Average scores")
    table.add_column("Speaker")
    for column in ("Argumentation", "Evidence", "Delivery", "Rebuttal", "Total"):
        table.add_column(column, justify="right")
    for score in verdict.average_scores:
        table.add_row(
            score.speaker,
            *(f"{v:.1f}" for v in (score.argumentation, score.evidence, score.delivery, score.rebuttal, score.total)),
        )
    console.print(table)

    for judgment in verdict.individual_judgments:
        evaluation = judgment.evaluation
        console.print(
            Panel(
                evaluation.reasoning,
                title=f"[bold]{judgment.judge}[/bold] -> {evaluation.winner}",
                subtitle=f"{evaluation.confidence:g}% confidence",
                border_style="dim",
            )
        )
    console.print(Text(verdict.consensus_summary, style="italic"))


def print_signature(signed: SignedVerdict) -> None:
    console.print(
        Text(
            f"Signed by: {signed.signer_address} | Hash: {signed.hash} | "
            f"At: {datetime.fromtimestamp(signed.timestamp / 1000).isoformat(timespec='seconds')}",
            style="dim",
        )
    )


def print_verification(result: VerificationResult) -> None:
    if result.valid:
        console.print("[bold green]VALID[/bold green] verdict signed by the configured signer")
        return
    if not result.hash_match:
        console.print("[bold red]INVALID[/bold red] verdict content does not match its hash")
    elif not result.signature_valid:
        console.print("[bold red]INVALID[/bold red] signature does not verify")
    else:
        console.print("[bold red]INVALID[/bold red] claimed signer is not the configured signer")
    console.print(f"[dim]Expected signer: {result.expected_signer}[/dim]")
