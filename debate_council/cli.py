"""Click CLI: config loading, provider wiring, judgment runs and verification."""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from debate_council.errors import CouncilError
from debate_council.healthcheck import run_health_checks
from debate_council.inbox import archive_file, ensure_dirs, parse_transcript_file, scan_inbox
from debate_council.models import (
    CouncilModel,
    DebateMetadata,
    JudgmentRequest,
    JudgmentResult,
    ProgressEvent,
    ProgressStep,
)
from debate_council.output import (
    JsonFileStore,
    load_signed_verdict,
    print_signature,
    print_verdict,
    print_verification,
)
from debate_council.pipeline import run_judgment
from debate_council.providers.anthropic import AnthropicStructuredProvider
from debate_council.providers.base import ProviderError, StructuredLLM, TranscriptionProvider
from debate_council.providers.gemini import GeminiStructuredProvider
from debate_council.providers.openai_provider import OpenAIStructuredProvider
from debate_council.providers.router import ModelRouter
from debate_council.providers.whisper import WhisperTranscriber
from debate_council.signing import VerdictSigner, VerdictVerifier

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[StructuredLLM]] = {
    "openai": OpenAIStructuredProvider,
    "anthropic": AnthropicStructuredProvider,
    "gemini": GeminiStructuredProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    sys.exit(1)


def _build_llm(config: AppConfig) -> StructuredLLM | None:
    """Instantiate every available endpoint and route model ids between them."""
    routes: list[tuple[str, StructuredLLM]] = []
    default: StructuredLLM | None = None
    for name, endpoint in config.endpoints.items():
        if name not in config.available_endpoints:
            continue
        if endpoint.sdk not in PROVIDER_CLASSES:
            logger.warning("Endpoint '%s' uses unknown sdk '%s', skipping", name, endpoint.sdk)
            continue
        try:
            provider = PROVIDER_CLASSES[endpoint.sdk](endpoint)
        except Exception as exc:
            logger.warning("Failed to instantiate endpoint '%s': %s", name, exc)
            continue
        if endpoint.prefixes:
            routes.extend((prefix, provider) for prefix in endpoint.prefixes)
        elif default is None:
            default = provider
    if not routes and default is None:
        return None
    return ModelRouter(routes, default)


def _build_transcriber(config: AppConfig) -> TranscriptionProvider | None:
    transcriber_cfg = config.transcription.providers[config.transcription.provider]
    try:
        return WhisperTranscriber(transcriber_cfg)
    except ProviderError as exc:
        logger.info("Transcription unavailable: %s", exc)
        return None


def _build_signer(config: AppConfig) -> VerdictSigner:
    seed = os.environ.get(config.signing.seed_env, "").strip()
    if not seed:
        _fail(f"{config.signing.seed_env} environment variable is required for signing")
    return VerdictSigner.from_seed(seed, config.signing.derivation_index)


def _parse_models_arg(models_arg: str | None, config: AppConfig) -> list[CouncilModel] | None:
    """Parse "id=Name,id2=Name2" (names optional). None keeps the default council.

    Ids already in the default council keep their reasoning-effort flag.
    """
    if not models_arg:
        return None
    known = {m.id: m for m in config.council}
    models: list[CouncilModel] = []
    for entry in models_arg.split(","):
        entry = entry.strip()
        if not entry:
            continue
        model_id, _, name = entry.partition("=")
        model_id = model_id.strip()
        default = known.get(model_id)
        models.append(
            CouncilModel(
                id=model_id,
                name=name.strip() or (default.name if default else model_id),
                supports_reasoning_effort=default.supports_reasoning_effort if default else False,
            )
        )
    return models


def _check_and_filter_judges(
    llm: StructuredLLM, judges: list[CouncilModel], quorum: int
) -> list[CouncilModel]:
    """Ping every judge, report, and ask whether to continue without failures."""
    console.print("\n[bold]Checking judges...[/bold]")
    results = asyncio.run(run_health_checks(llm, judges))

    failed_names: list[str] = []
    for judge in judges:
        ok, err = results[judge.name]
        if ok:
            console.print(f"  [green]OK  [/green] {judge.name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {judge.name}: {short_err}")
            failed_names.append(judge.name)

    if not failed_names:
        console.print()
        return judges

    working = [j for j in judges if j.name not in failed_names]
    if len(working) < quorum:
        _fail(f"Only {len(working)} judge(s) passed the health check, need at least {quorum}.")

    console.print(f"\n[yellow]{len(failed_names)} judge(s) failed:[/yellow] {', '.join(failed_names)}")
    if not click.confirm("Continue with working judges only?", default=True):
        sys.exit(0)
    console.print()
    return working


async def _run_single(
    request: JudgmentRequest,
    config: AppConfig,
    llm: StructuredLLM,
    signer: VerdictSigner,
    transcriber: TranscriptionProvider | None,
    store: JsonFileStore,
) -> JudgmentResult:
    judges = request.models or config.council
    topic = request.metadata.topic
    console.print(f"\n[bold cyan]Debate Council[/bold cyan]: {len(judges)} judges")
    console.print(f"Judges: {', '.join(j.name for j in judges)}")
    console.print(f"Topic: [italic]{topic[:80]}{'...' if len(topic) > 80 else ''}[/italic]\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting...", total=None)

        def on_progress(event: ProgressEvent) -> None:
            progress.update(task, description=f"[{event.progress:>3}%] {event.message}")
            if event.step == ProgressStep.JUDGE_COMPLETED:
                progress.print(f"[green]OK[/green] {event.message}")
            elif event.step == ProgressStep.JUDGE_FAILED:
                progress.print(f"[red]FAIL[/red] {event.message}")

        result = await run_judgment(
            request,
            config,
            llm,
            signer,
            transcriber=transcriber,
            store=store,
            on_progress=on_progress,
        )

    print_verdict(result.signed_verdict.verdict)
    print_signature(result.signed_verdict)
    console.print(f"\n[dim]Judgment id: {result.id or 'not saved'}[/dim]")
    return result


async def _run_inbox(
    inbox_dir: Path,
    config: AppConfig,
    llm: StructuredLLM,
    signer: VerdictSigner,
    store: JsonFileStore,
    models: list[CouncilModel] | None,
) -> None:
    """Judge every transcript in the inbox; archive each, marking failures."""
    archive_dir = inbox_dir / "archive"
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return

    for file_path in files:
        text, metadata = parse_transcript_file(file_path)
        request = JudgmentRequest(metadata=metadata, transcript=text, models=models)
        try:
            result = await _run_single(request, config, llm, signer, None, store)
            archived = archive_file(file_path, archive_dir)
            click.echo(f"Processed: {file_path.name} -> {result.id} (archived: {archived.name})")
        except Exception as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--settings", "settings_path", type=click.Path(exists=True, path_type=Path), default=None,
              help="Path to settings.yaml (default: bundled config)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, settings_path: Path | None) -> None:
    """Debate Council -- multi-model debate adjudication with signed verdicts."""
    load_dotenv()
    _setup_logging(verbose)
    try:
        ctx.obj = load_config(settings_path) if settings_path else load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@click.argument("topic", required=False)
@click.option("--transcript-file", type=click.Path(exists=True, path_type=Path),
              help="Transcript text or markdown (front matter may set topic/description/thumbnail)")
@click.option("--audio", "audio_files", multiple=True, type=click.Path(exists=True, path_type=Path),
              help="Audio file; repeat to concatenate several recordings")
@click.option("--description", default=None, help="Short description stored with the judgment")
@click.option("--thumbnail", default=None, help="Thumbnail URL stored with the judgment")
@click.option("--models", default=None, help='Comma-separated "id=Name" council override')
@click.option("--output", "output_path", default=None, type=click.Path(path_type=Path),
              help="Output directory (default: from config)")
@click.option("--inbox", "inbox_dir", default=None, type=click.Path(file_okay=False, path_type=Path),
              help="Judge every transcript in this folder")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip pinging each judge model before the run")
@click.pass_obj
def judge(
    config: AppConfig,
    topic: str | None,
    transcript_file: Path | None,
    audio_files: tuple[Path, ...],
    description: str | None,
    thumbnail: str | None,
    models: str | None,
    output_path: Path | None,
    inbox_dir: Path | None,
    skip_health_check: bool,
) -> None:
    """Judge a debate from a transcript, audio recordings, or an inbox folder.

    \b
    Examples:
      debate-council judge "Should remote work be default?" --transcript-file debate.txt
      debate-council judge "Nuclear power" --audio part1.mp3 --audio part2.mp3
      debate-council judge --transcript-file debate.md --models "openai/gpt-5.1-thinking=GPT,google/gemini-3-pro-preview=Gemini"
      debate-council judge --inbox ./debates
    """
    llm = _build_llm(config)
    if llm is None:
        _fail("No structured-output endpoint available. Check API keys in .env.")
    signer = _build_signer(config)
    store = JsonFileStore(output_path or config.defaults.output_dir)
    council = _parse_models_arg(models, config)

    if not skip_health_check:
        council = _check_and_filter_judges(llm, council or config.council, config.defaults.quorum)

    if inbox_dir:
        asyncio.run(_run_inbox(inbox_dir, config, llm, signer, store, council))
        return

    transcript_text: str | None = None
    if transcript_file:
        transcript_text, metadata = parse_transcript_file(transcript_file, topic)
        metadata.description = description or metadata.description
        metadata.thumbnail = thumbnail or metadata.thumbnail
    elif topic:
        metadata = DebateMetadata(topic=topic, description=description, thumbnail=thumbnail)
    else:
        _fail("Provide a TOPIC with --audio, a --transcript-file, or --inbox.")

    audio = [path.read_bytes() for path in audio_files]
    transcriber = _build_transcriber(config) if audio else None
    request = JudgmentRequest(metadata=metadata, transcript=transcript_text, audio=audio, models=council)

    try:
        asyncio.run(_run_single(request, config, llm, signer, transcriber, store))
    except CouncilError as exc:
        _fail(str(exc))


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def verify(config: AppConfig, path: Path) -> None:
    """Verify a stored judgment against the configured signer."""
    try:
        signed = load_signed_verdict(path)
    except ValueError as exc:
        _fail(f"Not a signed verdict: {exc}")
    result = VerdictVerifier(_build_signer(config)).verify_signed(signed)
    print_verification(result)
    sys.exit(0 if result.valid else 1)


@main.command()
@click.pass_obj
def signer(config: AppConfig) -> None:
    """Print the configured signer address."""
    click.echo(_build_signer(config).address)


@main.command("models")
@click.pass_obj
def list_models(config: AppConfig) -> None:
    """List the default council."""
    for model in config.council:
        reasoning = " (reasoning effort: high)" if model.supports_reasoning_effort else ""
        click.echo(f"{model.id}  {model.name}{reasoning}")


if __name__ == "__main__":
    main()
