"""Abstract bases for structured-output LLM and transcription providers."""

from abc import ABC, abstractmethod
from typing import Any

from debate_council.models import ChunkTranscription


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class StructuredLLM(ABC):
    """A model endpoint that returns JSON objects matching a schema."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gateway', 'claude')."""
        ...

    @abstractmethod
    async def evaluate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema: dict[str, Any],
        model_id: str,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Run one structured completion.

        Args:
            system_prompt: Instructions for the model.
            user_prompt: The task payload.
            schema: JSON schema the returned object must follow.
            model_id: Model identifier, gateway form "provider/model".
            options: Provider extras, e.g. {"reasoning_effort": "high"}.

        Returns:
            The decoded JSON object. Callers validate it further.

        Raises:
            ProviderError: On API failure, timeout, or undecodable output.
        """
        ...


class TranscriptionProvider(ABC):
    """A speech-to-text endpoint that accepts one audio chunk per call."""

    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def chunk_size_bytes(self) -> int:
        """Largest chunk the endpoint accepts."""
        ...

    def diarizes(self) -> bool:
        """True when the endpoint returns per-segment speaker labels."""
        return False

    @abstractmethod
    async def transcribe_chunk(self, chunk: bytes, index: int, total: int) -> ChunkTranscription:
        """Transcribe a single chunk.

        Raises:
            ProviderError: On API failure or empty output.
        """
        ...
