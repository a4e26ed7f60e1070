"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from debate_council.models import CouncilModel
from debate_council.retry import RetryPolicy

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class EndpointConfig:
    name: str
    sdk: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    prefixes: list[str] = field(default_factory=list)   # empty -> catch-all


@dataclass
class TranscriberConfig:
    name: str
    model: str
    api_key_env: str
    chunk_size_mb: int
    timeout_sec: int
    base_url: str | None = None
    speaker_labels: bool = False
    language: str = "en"


@dataclass
class TranscriptionConfig:
    provider: str
    providers: dict[str, TranscriberConfig] = field(default_factory=dict)


@dataclass
class RetryConfig:
    default: RetryPolicy = field(default_factory=RetryPolicy)
    moderation: RetryPolicy = field(default_factory=lambda: RetryPolicy(max_retries=2))
    council: RetryPolicy = field(default_factory=lambda: RetryPolicy(max_retries=5, delay_sec=2.0))


@dataclass
class StagesConfig:
    moderation_model: str
    formatting_model: str
    moderation_char_limit: int = 5000


@dataclass
class SigningConfig:
    seed_env: str
    derivation_index: int = 0


@dataclass
class PromptsConfig:
    judge_system: str
    judge_user: str
    moderation_system: str
    moderation_user: str
    formatting_system: str
    formatting_user: str


@dataclass
class DefaultsConfig:
    output_dir: Path
    max_audio_file_size_mb: int = 300
    max_parallel_chunks: int = 4
    quorum: int = 2


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    endpoints: dict[str, EndpointConfig]
    stages: StagesConfig
    retry: RetryConfig
    council: list[CouncilModel]
    transcription: TranscriptionConfig
    signing: SigningConfig
    prompts: PromptsConfig
    available_endpoints: set[str] = field(default_factory=set)


def _retry_policy(raw: dict | None, fallback: RetryPolicy) -> RetryPolicy:
    if not raw:
        return fallback
    return RetryPolicy(
        max_retries=int(raw.get("max_retries", fallback.max_retries)),
        delay_sec=float(raw.get("delay_sec", fallback.delay_sec)),
        backoff=str(raw.get("backoff", fallback.backoff)),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on an
    unknown backoff or transcription provider name.
    Logs missing API keys but does not raise; callers check
    available_endpoints.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        output_dir=Path(defaults_raw["output_dir"]),
        max_audio_file_size_mb=int(defaults_raw.get("max_audio_file_size_mb", 300)),
        max_parallel_chunks=int(defaults_raw.get("max_parallel_chunks", 4)),
        quorum=int(defaults_raw.get("quorum", 2)),
    )

    endpoints: dict[str, EndpointConfig] = {}
    available_endpoints: set[str] = set()
    for endpoint_name, endpoint_raw in raw["endpoints"].items():
        endpoints[endpoint_name] = EndpointConfig(
            name=endpoint_name,
            sdk=endpoint_raw["sdk"],
            api_key_env=endpoint_raw["api_key_env"],
            timeout_sec=int(endpoint_raw["timeout_sec"]),
            max_tokens=int(endpoint_raw["max_tokens"]),
            base_url=endpoint_raw.get("base_url"),
            prefixes=list(endpoint_raw.get("prefixes", [])),
        )
        if os.environ.get(endpoint_raw["api_key_env"], "").strip():
            available_endpoints.add(endpoint_name)
            logger.info("Endpoint available: %s", endpoint_name)
        else:
            logger.info(
                "Endpoint skipped (no API key): %s (set %s in .env)",
                endpoint_name,
                endpoint_raw["api_key_env"],
            )

    stages_raw = raw["stages"]
    stages = StagesConfig(
        moderation_model=str(stages_raw["moderation_model"]),
        formatting_model=str(stages_raw["formatting_model"]),
        moderation_char_limit=int(stages_raw.get("moderation_char_limit", 5000)),
    )

    retry_raw = raw.get("retry", {})
    base_retry = RetryConfig()
    retry = RetryConfig(
        default=_retry_policy(retry_raw.get("default"), base_retry.default),
        moderation=_retry_policy(retry_raw.get("moderation"), base_retry.moderation),
        council=_retry_policy(retry_raw.get("council"), base_retry.council),
    )
    for policy in (retry.default, retry.moderation, retry.council):
        if policy.backoff not in ("linear", "exponential"):
            raise ValueError(f"Unknown backoff: {policy.backoff}")

    council = [
        CouncilModel(
            id=str(m["id"]),
            name=str(m["name"]),
            supports_reasoning_effort=bool(m.get("supports_reasoning_effort", False)),
        )
        for m in raw["council"]
    ]

    transcription_raw = raw["transcription"]
    transcribers = {
        name: TranscriberConfig(
            name=name,
            model=str(t["model"]),
            api_key_env=str(t["api_key_env"]),
            chunk_size_mb=int(t["chunk_size_mb"]),
            timeout_sec=int(t.get("timeout_sec", 600)),
            base_url=t.get("base_url"),
            speaker_labels=bool(t.get("speaker_labels", False)),
            language=str(t.get("language", "en")),
        )
        for name, t in transcription_raw["providers"].items()
    }
    provider_override = os.environ.get("TRANSCRIPTION_PROVIDER", "").strip()
    transcription = TranscriptionConfig(
        provider=provider_override or str(transcription_raw["provider"]),
        providers=transcribers,
    )
    if transcription.provider not in transcribers:
        raise ValueError(f"Unknown transcription provider: {transcription.provider}")

    signing_raw = raw["signing"]
    signing = SigningConfig(
        seed_env=str(signing_raw["seed_env"]),
        derivation_index=int(signing_raw.get("derivation_index", 0)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        judge_system=prompts_raw["judge_system"],
        judge_user=prompts_raw["judge_user"],
        moderation_system=prompts_raw["moderation_system"],
        moderation_user=prompts_raw["moderation_user"],
        formatting_system=prompts_raw["formatting_system"],
        formatting_user=prompts_raw["formatting_user"],
    )

    return AppConfig(
        defaults=defaults,
        endpoints=endpoints,
        stages=stages,
        retry=retry,
        council=council,
        transcription=transcription,
        signing=signing,
        prompts=prompts,
        available_endpoints=available_endpoints,
    )
